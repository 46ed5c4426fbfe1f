"""Schema merging, loose schema comparison and naming helpers for JSON Schema type generation."""

__version__ = "0.1.0"

__all__ = ["merge", "merge_fields", "naming", "roughly"]