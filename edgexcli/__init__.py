"""Command handlers and HTTP access for the core and support microservices of an EdgeX platform."""

__version__ = "2.0.0"