"""
WSGI entry points

    gunicorn wsgi:app                 operator API
    gunicorn -b 0.0.0.0:7547 wsgi:acs CWMP endpoint
"""
import os

from ponmgr import create_acs_app, create_app

# Use environment-provided key matching ponmgr.config map or default to 'production'
config_name = os.environ.get('FLASK_ENV', 'production')
app = create_app(config_name)
acs = create_acs_app(config_name)

if __name__ == '__main__':
    app.run(host='0.0.0.0', port=5000)
