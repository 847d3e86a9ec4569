"""Display calibration profiles."""

from retinaforge.display.display import Display, create_display, list_displays, DISPLAY_PROFILES

__all__ = ["Display", "create_display", "list_displays", "DISPLAY_PROFILES"]
