"""Event Promoter Package.

Console entry point for the schema-driven rendering and template
application engine.

Exported Functions:
    main: Entry point for the promoter console command
"""
from .promoter import main

__all__ = ["main"]
