"""Purchase session and inventory reporting for a resale business."""

__version__ = "0.1.0"
