"""Service helpers for the web application."""

from .workflow_service import to_detail, to_summary

__all__ = ['to_detail', 'to_summary']
