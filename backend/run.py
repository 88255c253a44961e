"""
Development server for the operator API (/api/olts, /api/tr069) with /acs mounted.
Use acs_server.py to listen on the TR-069 port instead.
"""
import os

from ponmgr import create_app

app = create_app(os.environ.get('FLASK_ENV', 'development'))

if __name__ == '__main__':
    app.run(host=os.environ.get('API_HOST', '127.0.0.1'), port=int(os.environ.get('API_PORT', 5000)), debug=app.debug)
