import logging
import logging.config


def configure_logging(config=None) -> logging.Logger:
    """Настройка логирования из конфигурации приложения"""
    if config is None:
        from balance.config import config as default_config
        config = default_config

    if config.log_to_file:
        config.log_dir.mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(config.get_logging_config())
    return logging.getLogger("balance")
