# backend/wsgi.py
# FLASK_APP=wsgi.py flask run
from painperdu import create_app

app = create_app()
