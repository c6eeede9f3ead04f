import eventlet
eventlet.monkey_patch()

import logging
import os
import sys

from jbmmsi.app import create_app


if bool(os.environ.get('DEBUG', "")):
    print("Sending all debug messages to the console")
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    logging.getLogger('kafka').setLevel(logging.INFO)
    logging.getLogger('engineio').setLevel(logging.WARN)
    logging.getLogger('socketio').setLevel(logging.WARN)
    ch = logging.StreamHandler(sys.stdout)
    ch.setLevel(logging.DEBUG)
    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    ch.setFormatter(formatter)
    root.addHandler(ch)
else:
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

logger = logging.getLogger(__name__)

# gunicorn --worker-class eventlet -w 1 start:app
app = create_app()

if __name__ == '__main__':
    print("Please use gunicorn for development as well.")
    sys.exit(-1)
