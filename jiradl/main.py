"""
main.py

Flask backend for exporting Jira projects: ticket exports and
size-bounded attachment archives.

Dependencies:
  - Python packages: Flask, flask-restx, flask-socketio, redis, celery, requests
  - Infrastructure: Redis server (job store, Celery broker, SocketIO queue)

Notes:
  - API v1 endpoints available at /api/v1/ with Swagger docs at /api/v1/docs
  - JOB_QUEUE_BACKEND=local runs jobs in worker threads of this process
"""

import os

from jiradl.app_factory import create_app
from jiradl.config.socketio_config import get_socketio

app = create_app()


def main():
    host = os.getenv("FLASK_HOST", "0.0.0.0")
    port = int(os.getenv("FLASK_PORT", 8000))
    debug = os.getenv("FLASK_DEBUG", "false").lower() == "true"

    socketio = get_socketio()
    if socketio is not None:
        socketio.run(app, host=host, port=port, debug=debug, allow_unsafe_werkzeug=True)
    else:
        app.run(host=host, port=port, debug=debug, threaded=True)


if __name__ == "__main__":
    main()
