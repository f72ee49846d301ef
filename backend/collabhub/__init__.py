"""Realtime collaboration hub: presence, whiteboard relay, project chat and task notices."""
