"""
Laudos - Forensic expert case management

Tracks labor-court expertise processes and assembles the insalubrity and
periculosity report ("laudo pericial") from the collected data.
"""

__version__ = "0.1.0"
