#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import json
import logging
from pathlib import Path

import yaml


LOG_FORMAT = '[%(asctime).19s] [%(name)s] [%(levelname)s] %(message)s'


def configure_logger(logger,
                     log_file=None,
                     log_format=LOG_FORMAT,
                     log_level=logging.INFO):
    """Configure a logger with a file or stream handler

    Args:
        logger: Logger instance or logger name string
        log_file: File path string or file-like object (None for stderr)
        log_format: Format string for log messages
        log_level: Logging level (e.g., logging.INFO, logging.DEBUG)

    Returns:
        Configured logger instance
    """
    if isinstance(log_file, str):
        handler = logging.FileHandler(
            log_file,
            mode='a',
            encoding='utf-8',
            errors='replace'
        )
    else:
        handler = logging.StreamHandler(log_file)  # Default to stderr if None

    handler.setFormatter(logging.Formatter(log_format))

    if isinstance(logger, str):
        logger = logging.getLogger(logger)

    logger.addHandler(handler)
    logger.setLevel(log_level)

    return logger


def load_config_file(config_file):
    """Load a JSON or YAML configuration file

    Args:
        config_file: Path to the file; .yaml/.yml is parsed as YAML,
                     anything else as JSON

    Returns:
        Configuration dictionary (empty if the file is empty)
    """
    config_file = str(config_file)
    with open(config_file, 'r', encoding='utf-8') as fp:
        if config_file.endswith(('.yaml', '.yml')):
            return yaml.safe_load(fp) or {}
        return json.load(fp)


def get_config(config_file):
    """Load configuration and set up logging for the alert runner

    Returns:
        Tuple of (conf, kwargs) where:
            conf: Full configuration dictionary from config file
            kwargs: Runner parameters extracted from config
    """
    conf = load_config_file(config_file)

    logging_config = conf.get('logging', {})
    log_level_str = logging_config.get('level', 'info')
    log_level = getattr(logging, log_level_str.upper())

    logging.basicConfig(level=log_level, format=LOG_FORMAT)

    # Optional log file in addition to stderr
    log_file = logging_config.get('file')
    if log_file:
        configure_logger(logging.getLogger(), log_file, log_level=log_level)

    plugin_conf = dict(conf.get('alert', {}))

    # Resolve the plugin settings file relative to the main config file
    config_path = plugin_conf.get('config_path')
    if config_path and not Path(config_path).is_absolute():
        plugin_conf['config_path'] = str(Path(config_file).parent / config_path)

    return conf, {
        'nats_url': conf.get('nats_url', 'nats://localhost:4222'),
        'plugin_config': plugin_conf,
    }
