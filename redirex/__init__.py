"""Header-based HTTP redirection: a receptor server, request rules, endpoints and a scoped IoC container."""

__version__ = "0.1.0"