"""Realtime voice session client.

The client fetches an ephemeral key from the relay and talks to the upstream
realtime endpoint directly over WebRTC:
client -> relay (/api/token) -> client -> upstream (SDP offer/answer) -> audio + data channel.
"""
