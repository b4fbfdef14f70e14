"""Resume Preview - live HTML resume preview with PDF export and ATS text checks."""

__version__ = "0.1.0"
