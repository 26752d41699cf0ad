"""Furlong: a multiplayer horse-race simulation core.

A host runs the authoritative race engine; game modes (random events,
trivia, button mash) feed it speeds and modifiers, and a record-store
sync layer mirrors the results to other clients.
"""

__version__ = "0.1.0"
