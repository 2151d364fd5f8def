"""Clash of Clans clan dashboard: snapshot history, activity inference and a Discord front end."""

__version__ = "1.0.0"
