from . import admin_config as admin_config
