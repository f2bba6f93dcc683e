import multiprocessing

bind = "127.0.0.1:8000"
# one worker: the APScheduler jobs run inside the app process
workers = 1
threads = multiprocessing.cpu_count()
worker_class = "uvicorn.workers.UvicornWorker"
wsgi_app = "tutor_scheduling.main:app"
timeout = 60
graceful_timeout = 30
keepalive = 5
loglevel = "info"
accesslog = "-"
errorlog = "-"
