from .exiftool import ExifTool
from .proptool import PropTool

__all__ = ["ExifTool", "PropTool"]
