"""
Gunicorn config: bind to 0.0.0.0 and PORT for Railway/Render.
Requests are short-lived; the OTP store needs no shared process state, so workers scale freely.
"""
import os

bind = "0.0.0.0:{}".format(os.environ.get("PORT", "8080"))
workers = int(os.environ.get("WEB_CONCURRENCY", "2"))
threads = 2
timeout = 60
wsgi_app = "passenger_wsgi:application"
