"""Agenda module -- per-meeting agenda items, their state machine, and ordering."""
