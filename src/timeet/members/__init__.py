"""Member identity records referenced by meetings, participants, and hosts."""
