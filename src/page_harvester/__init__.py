"""page-harvester: rule-driven structured extraction from rendered web pages."""

__version__ = "0.1.0"
