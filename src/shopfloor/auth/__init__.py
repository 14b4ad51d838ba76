"""Authentication — password hashing, sessions, and the session gate.

Learn: Cookie sessions, not tokens. Login binds a username into a
server-side session; the browser only holds an opaque session id. Every
gated HTTP route and the WebSocket handshake resolve that id back to a
username, and the username back to a credential record.
"""
