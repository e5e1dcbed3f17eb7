"""DentalHub API: multi-tenant dental practice management"""

__version__ = "1.0.0"
