"""Durable storage for the accumulator (CSV event log)."""

from .audit import COLUMN_HEADERS, AuditSink

__all__ = ["AuditSink", "COLUMN_HEADERS"]
