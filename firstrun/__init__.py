"""Reading of WPILOG data logs, decoding of entry values and WPILib struct schemas."""

__version__ = "0.1.0"