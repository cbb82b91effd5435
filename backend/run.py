import atexit

from quizlive import create_app, socketio

app = create_app()
# Log and drop whatever sessions are still live when the process exits
atexit.register(app.extensions['quiz_registry'].drain)

if __name__ == '__main__':
    # Use SocketIO server to enable websockets in dev
    socketio.run(app, debug=True)
