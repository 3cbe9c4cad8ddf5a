import multiprocessing
import os

wsgi_app = "school_ops.main:app"
bind = f"0.0.0.0:{os.environ.get('PORT', '3000')}"
# The scheduler runs in every worker when ENABLE_SCHEDULER is set; keep one worker in that case.
workers = 1 if os.environ.get("ENABLE_SCHEDULER", "").lower() in {"1", "true", "yes"} else (multiprocessing.cpu_count() * 2) + 1
worker_class = "uvicorn.workers.UvicornWorker"
timeout = 60
graceful_timeout = 30
keepalive = 5
loglevel = "info"
accesslog = "-"
errorlog = "-"
