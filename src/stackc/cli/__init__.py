"""
stackc Command-Line Interface
=============================

- **stackcc**: compiles a source file to x86-64 NASM assembly

Implemented as a Click application with help and error reporting.
"""

__all__ = ["stackcc"]
