import logging
import sys
import json
from datetime import datetime, timezone
from pathlib import Path
from campus_support.config import get_settings

# Configure logging
def setup_logger(name: str = "campus_support", logs_dir: str = None):
    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO)

    # Handlers are attached once per process, even if setup runs again
    if logger.handlers:
        return logger

    logs_path = Path(logs_dir or get_settings().logs_dir)
    logs_path.mkdir(exist_ok=True)

    # Create formatters
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    console_formatter = logging.Formatter(
        '%(levelname)s: %(message)s'
    )

    # Create handlers
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(console_formatter)
    console_handler.setLevel(logging.INFO)

    # Create file handler
    file_handler = logging.FileHandler(
        logs_path / f"server_{datetime.now().strftime('%Y%m%d')}.log"
    )
    file_handler.setFormatter(file_formatter)
    file_handler.setLevel(logging.INFO)

    # Add handlers to logger
    logger.addHandler(console_handler)
    logger.addHandler(file_handler)

    return logger

class AuditLogger:
    """
    JSON-line audit trail for request lifecycle transitions and admin actions.

    Each entry records who did what to which entity, so an administrator can
    reconstruct a request's history even though the store only keeps the
    latest snapshot.
    """
    def __init__(self, name: str = "campus_support.audit"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)
        if not self.logger.handlers:
            logs_path = Path(get_settings().logs_dir)
            logs_path.mkdir(exist_ok=True)
            handler = logging.FileHandler(logs_path / 'audit.log')
            handler.setFormatter(logging.Formatter('%(asctime)s - %(message)s'))
            self.logger.addHandler(handler)

    def log_event(self, event_type: str, actor_id: str, entity_id: str, details: dict = None):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event_type": event_type,
            "actor_id": actor_id,
            "entity_id": entity_id,
            "details": details or {}
        }
        self.logger.info(json.dumps(log_entry, default=str))

# Create global logger instances
logger = setup_logger()
audit_logger = AuditLogger()

# Use single logger instance across all files
