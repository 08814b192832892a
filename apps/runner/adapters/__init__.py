from .browser import BrowserSurface
from .input import DesktopInputExecutor
from .screen import capture_screen
from .surface import DesktopSurface

__all__ = ["BrowserSurface", "DesktopInputExecutor", "DesktopSurface", "capture_screen"]
