"""Call audio transport.

A call's audio arrives over a WebSocket: either Twilio Media Streams JSON
frames or raw binary chunks from any other client. Replies go back over the
same socket.
"""
