from .setting import Setting

__all__ = ["Setting"]
