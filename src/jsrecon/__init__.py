"""jsrecon — regex-driven reconnaissance scanner for web page content."""

__version__ = "0.1.0"
