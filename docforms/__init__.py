"""
docforms - schema-driven form engine for template based document generation.
"""

__version__ = "1.0.0"
