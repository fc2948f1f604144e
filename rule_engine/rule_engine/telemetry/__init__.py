"""Logging setup for the rule engine and its command line."""

from rule_engine.telemetry.logging_setup import JSONFormatter, configure_logging

__all__ = ["JSONFormatter", "configure_logging"]
