"""
Standalone CWMP listener for development (TR-069 port 7547 by default)
"""
import os

from ponmgr import create_acs_app

app = create_acs_app(os.environ.get('FLASK_ENV', 'development'))

if __name__ == '__main__':
    app.run(host=app.config['ACS_HOST'], port=app.config['ACS_PORT'], debug=app.debug)
