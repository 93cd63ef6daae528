"""HTTP routers for the UNO game server."""
