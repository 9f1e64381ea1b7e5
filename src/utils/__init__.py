"""
Utility modules for schema export

Provides:
- logging: Console, JSON and rotating-file logging setup
- metrics: Prometheus metric registration and HTTP endpoint
- tracing: OpenTelemetry spans
"""

__version__ = "1.0.0"
__all__ = ["logging", "metrics", "tracing"]
