#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Utility functions for the heartbeat monitor.

Logging setup shared by the listener and sweeper threads.
"""

import os
import logging

LOGGER_NAME = "Heartbeat"

# Log file location
LOG_FILE = "logs/heartbeat.log"


def setup_logging(log_file=LOG_FILE, level=logging.INFO):
    """Setup logging configuration for the application."""
    handlers = [logging.StreamHandler()]
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(threadName)s - %(message)s',
        handlers=handlers
    )
    return logging.getLogger(LOGGER_NAME)
