"""ASGI entrypoint: serve ``carenotify.main:server_app``."""

from dotenv import load_dotenv

from carenotify.server import server

load_dotenv()

server_app = server.handler
