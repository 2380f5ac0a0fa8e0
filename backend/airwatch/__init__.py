"""
Air Quality Live Dashboard
==========================

Backend and viewer client for the Arduino air quality station.

HOW IT'S ORGANIZED:
------------------
- models/    = Data structures (what does a reading look like?)
- services/  = Workers (store readings, broadcast them live)
- routers/   = API endpoints (the doors into our app)
- client/    = Viewer side: keeps a dashboard's current reading in sync
- main.py    = Puts it all together and starts the server
"""

__version__ = "1.0.0"
