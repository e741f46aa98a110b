import os

def cpu():
    return max(1, (os.cpu_count() or 1))

wsgi_app = "config.wsgi:application"
bind = f"0.0.0.0:{os.getenv('PORT', '5000')}"

# Workers; each request is independent, the store is the only shared resource
workers = int(os.getenv("GUNI_WORKERS", str(min(max(2, cpu() * 2), 8))))

# Threads per worker for blocking store/file IO
worker_class = "gthread"
threads = int(os.getenv("GTHREADS", "4"))

# Timeouts; proof uploads carry base64 bodies up to API_MAX_BYTES
timeout = int(os.getenv("GUNI_TIMEOUT", "60"))
graceful_timeout = int(os.getenv("GUNI_GRACEFUL_TIMEOUT", "30"))
keepalive = int(os.getenv("GUNI_KEEPALIVE", "5"))

# Import the app once in the master before forking
preload_app = True
max_requests = int(os.getenv("GUNI_MAX_REQUESTS", "2000"))
max_requests_jitter = int(os.getenv("GUNI_MAX_REQUESTS_JITTER", "200"))

# Application logs are JSON via Django LOGGING; gunicorn logs go to stdio
accesslog = os.getenv("GUNI_ACCESSLOG", "-")
errorlog = "-"
loglevel = os.getenv("GUNI_LOGLEVEL", "info")
