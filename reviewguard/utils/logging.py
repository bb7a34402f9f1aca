import logging
import logging.config
import os


def setup_logging(app):
    """Configure application logging"""

    log_level = str(app.config.get('LOG_LEVEL', 'INFO')).upper()
    log_file = app.config.get('LOG_FILE')

    handlers = {
        'console': {
            'class': 'logging.StreamHandler',
            'level': log_level,
            'formatter': 'simple',
            'stream': 'ext://sys.stdout'
        }
    }
    active_handlers = ['console']

    if log_file:
        # Ensure log directory exists
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir, exist_ok=True)

        handlers['file'] = {
            'class': 'logging.handlers.RotatingFileHandler',
            'level': log_level,
            'formatter': 'detailed',
            'filename': log_file,
            'maxBytes': 10485760,  # 10MB
            'backupCount': 5
        }
        active_handlers.append('file')

    logging_config = {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'detailed': {
                'format': '%(asctime)s [%(levelname)s] %(name)s: %(message)s [%(filename)s:%(lineno)d]'
            },
            'simple': {
                'format': '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
            }
        },
        'handlers': handlers,
        'loggers': {
            'reviewguard': {
                'level': log_level,
                'handlers': active_handlers,
                'propagate': False
            },
            'twilio': {
                'level': 'WARNING',
                'handlers': active_handlers,
                'propagate': False
            },
            'stripe': {
                'level': 'INFO',
                'handlers': active_handlers,
                'propagate': False
            }
        },
        'root': {
            'level': 'WARNING',
            'handlers': active_handlers
        }
    }

    logging.config.dictConfig(logging_config)

    app.logger.setLevel(getattr(logging, log_level, logging.INFO))
    app.logger.info(f"ReviewGuard logging configured - Log level: {log_level}")
