"""
Logging utilities for the account portal

Provides centralized logging configuration and an audit logger for
authentication events.
"""

import copy
import logging
import logging.config
import os
from typing import Any, Dict, Optional

import yaml

# Default logging configuration
DEFAULT_LOGGING_CONFIG = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'default': {
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            'datefmt': '%Y-%m-%d %H:%M:%S'
        },
        'detailed': {
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(module)s - %(funcName)s - %(lineno)d - %(message)s',
            'datefmt': '%Y-%m-%d %H:%M:%S'
        },
        'json': {
            'format': '{"timestamp": "%(asctime)s", "logger": "%(name)s", "level": "%(levelname)s", "module": "%(module)s", "function": "%(funcName)s", "line": %(lineno)d, "message": "%(message)s"}',
            'datefmt': '%Y-%m-%d %H:%M:%S'
        }
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'level': 'INFO',
            'formatter': 'default',
            'stream': 'ext://sys.stdout'
        }
    },
    'loggers': {
        'account_portal': {
            'level': 'INFO',
            'handlers': ['console'],
            'propagate': False
        }
    },
    'root': {
        'level': 'WARNING',
        'handlers': ['console']
    }
}


def load_logging_config(config_path: Optional[str]) -> Optional[Dict[str, Any]]:
    """Read a YAML dictConfig file, or None when absent/unreadable"""
    if not config_path or not os.path.exists(config_path):
        return None
    try:
        with open(config_path, 'r') as f:
            return yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logging.getLogger(__name__).warning(f"Failed to load logging config from {config_path}: {e}")
        return None


def setup_logging(
    config_path: Optional[str] = None,
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
    environment: Optional[str] = None
) -> Dict[str, Any]:
    """
    Setup logging configuration

    Args:
        config_path: Path to a YAML logging configuration file
        log_level: Override log level
        log_format: Override log format ('default', 'detailed', 'json')
        environment: Section of the config file with environment overrides

    Returns:
        dict: The configuration that was applied
    """
    config = load_logging_config(config_path) or copy.deepcopy(DEFAULT_LOGGING_CONFIG)

    # Apply environment-specific overrides
    environment = environment or os.getenv('ENVIRONMENT', 'development')
    if environment in config:
        env_config = config.pop(environment)
        if 'handlers' in env_config:
            config['handlers'].update(env_config['handlers'])
        if 'loggers' in env_config:
            config['loggers'].update(env_config['loggers'])

    if log_level:
        log_level = log_level.upper()
        for logger_config in config.get('loggers', {}).values():
            logger_config['level'] = log_level
        for handler_config in config.get('handlers', {}).values():
            handler_config['level'] = log_level

    if log_format and log_format in config.get('formatters', {}):
        for handler_config in config.get('handlers', {}).values():
            handler_config['formatter'] = log_format

    logging.config.dictConfig(config)
    logging.getLogger(__name__).debug(f"Logging configured for environment: {environment}")
    return config


def get_logger(name: str) -> logging.Logger:
    """
    Get logger instance

    Args:
        name: Logger name (usually __name__)
    """
    return logging.getLogger(name)


class AuditLogger:
    """Logger for authentication and profile events"""

    def __init__(self, name: str = "account_portal.audit"):
        self.logger = logging.getLogger(name)

    def log_user_action(
        self,
        action: str,
        resource: str,
        user_id: Optional[str] = None,
        email: Optional[str] = None,
        outcome: str = "success",
        details: Optional[Dict[str, Any]] = None
    ):
        """Log user action for audit trail"""
        actor = user_id or email or "anonymous"
        self.logger.info(
            f"User {actor} performed {action} on {resource}: {outcome}",
            extra={
                'user_id': user_id,
                'email': email,
                'action': action,
                'resource': resource,
                'outcome': outcome,
                'details': details or {},
                'event_type': 'user_action'
            }
        )


def get_audit_logger() -> AuditLogger:
    """Get audit logger instance"""
    return AuditLogger()
