"""
Gunicorn settings.

The store controller keeps products and sales in process memory and, in
local mode, rewrites both JSON files from that memory, so the app runs as a
single worker process. Concurrency comes from threads, which share one
controller and its lock.
"""
import os

bind = os.environ.get('GUNICORN_BIND', '0.0.0.0:8000')
workers = 1
threads = int(os.environ.get('GUNICORN_THREADS', '8'))
timeout = int(os.environ.get('GUNICORN_TIMEOUT', '60'))
graceful_timeout = 30
accesslog = '-'
