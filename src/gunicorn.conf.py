# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import os

import gunicorn.glogging

wsgi_app = "app:app"

max_requests = 1000
max_requests_jitter = 50
log_file = "-"
port = int(os.getenv("PORT", "8000"))
bind = f"0.0.0.0:{port}"

# Upstream CRM calls time out after CRM_API_TIMEOUT, keep the worker alive longer than that
timeout = 120

# Chat sessions live in process memory, so all requests must reach the same worker
workers = 1
worker_class = "uvicorn_worker.UvicornWorker"
log_config = gunicorn.glogging.CONFIG_DEFAULTS
