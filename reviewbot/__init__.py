"""Webhook bot that reviews pull/merge requests with an AI review service."""

__version__ = "0.1.0"
