"""
theorem-note: Obsidian-flavoured Markdown preview and editing helpers.
"""

from theoremnote.version_info import __version__
