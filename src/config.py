# Copyright (c) Microsoft Corporation. All rights reserved.
# Licensed under the MIT License.

import logging
import os

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

SERVICE_NAME = "crm-notes"

logger = logging.getLogger(__name__)
formatter = logging.Formatter(
    "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)


def get_log_level(default=logging.INFO) -> int:
    """Reads the minimum log level from CRM_NOTES_LOG_LEVEL, e.g. DEBUG or WARNING."""
    name = os.getenv("CRM_NOTES_LOG_LEVEL", "").upper()
    if not name:
        return default
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        logger.warning(f"Unknown log level {name}, using {logging.getLevelName(default)}")
        return default
    return level


def setup_tracing(app: FastAPI) -> None:
    """Configure OpenTelemetry tracing for the FastAPI app and correlate log records with spans."""
    tracer_provider = TracerProvider(resource=Resource.create({"service.name": SERVICE_NAME}))
    trace.set_tracer_provider(tracer_provider)

    # Export spans to stdout when asked to, typically for local development
    if os.getenv("CRM_NOTES_TRACE_CONSOLE"):
        tracer_provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    # Instrument FastAPI
    FastAPIInstrumentor.instrument_app(app, tracer_provider=tracer_provider)

    # Instrument Logging
    LoggingInstrumentor().instrument(set_logging_format=False)


def setup_logging(log_level=logging.DEBUG) -> None:
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    logger = logging.getLogger()
    logger.addHandler(console_handler)
    logger.setLevel(log_level)

    # aiohttp logs every connection at DEBUG
    logging.getLogger("aiohttp").setLevel(max(log_level, logging.INFO))
