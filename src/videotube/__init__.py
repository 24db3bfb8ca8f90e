"""VideoTube — backend for a video-sharing web application.

Users register and log in with a password, receive JWT access/refresh
tokens, publish video metadata and build up a watch history.
"""

__version__ = "0.1.0"
