"""Symtab Uploader: upload mapping and symbol files to Bugly, skipping files already uploaded."""

__version__ = "1.3.8"
