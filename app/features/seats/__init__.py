"""
Seat capacity feature module.

Tracks seats against contracted seat packages and maintains each
organization's derived freeze flag.
"""
