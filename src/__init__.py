"""
phpvm — build, install and manage side-by-side PHP versions from source.
"""

__version__ = "0.4.0"
