"""Real-time infrastructure — WebSocket fan-out of catalog and chat state.

Learn: Every connected browser holds one WebSocket. Clients submit one
record at a time (newMessage / newProduct); the server persists it and
pushes the *whole* updated collection to every connection. Clients just
replace their local list with the latest snapshot they received, so
interleaved broadcasts never need merging.
"""
