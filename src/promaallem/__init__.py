"""ProMaallem service-request intake backend."""

__version__ = "0.3.0"
