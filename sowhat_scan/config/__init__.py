from .config_manager import ScanClientConfig

__all__ = ["ScanClientConfig"]
