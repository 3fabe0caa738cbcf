"""
actlock

Pins GitHub Actions and reusable workflows referenced in workflow files
to full commit SHAs, or updates them to the latest published version.
"""

__version__ = "1.0.0"
