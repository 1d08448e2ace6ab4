"""Messaging app initialization.

The messaging app carries authenticated, point-to-point private
messages between users over WebSockets, persisting every message
before it is delivered and replaying recent history on reconnect.
"""
