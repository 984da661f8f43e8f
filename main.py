#!/usr/bin/env python3
"""Main entry point for the Gallery Backend.

Usage:
    # Run API server
    python main.py --config config/settings.yaml

    # Development mode with SQLite
    python main.py --config config/settings.dev.yaml --log-level DEBUG
"""

import argparse
import logging
import sys

from gallery.config import AppConfig


def setup_logging(level: str = "INFO"):
    """Setup logging configuration.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def create_storage(config: AppConfig):
    """Create storage instances from configuration.

    Both are created once per process and shared by every request.

    Args:
        config: Application configuration.

    Returns:
        Tuple of (object_storage, repository).
    """
    storage_config = config.storage

    images_config = storage_config.images
    if images_config.type == "minio":
        from gallery.storage.minio_storage import MinIOStorage
        object_storage = MinIOStorage(
            endpoint=images_config.endpoint,
            access_key=images_config.access_key,
            secret_key=images_config.secret_key,
            bucket=images_config.bucket,
            secure=images_config.secure,
            region=images_config.region,
        )
    else:
        raise ValueError(f"Unknown storage type: {images_config.type}")

    db_config = storage_config.database
    if db_config.type not in ("postgres", "sqlite"):
        raise ValueError(f"Unknown database type: {db_config.type}. Supported: postgres, sqlite")

    from gallery.storage.sql_repository import SQLImageRepository
    repository = SQLImageRepository(
        connection_string=db_config.url,
        echo=db_config.echo,
        pool_size=db_config.pool_size,
    )

    return object_storage, repository


def create_auth_verifier(config: AppConfig):
    """Create the bearer credential verifier, if a secret is configured.

    Args:
        config: Application configuration.

    Returns:
        AuthVerifier instance or None.
    """
    auth_config = config.auth
    if not auth_config.jwt_secret:
        if auth_config.require_for_gallery or auth_config.require_for_image_url:
            logging.getLogger(__name__).warning(
                "Authentication is required but no JWT secret is configured"
            )
        return None

    from gallery.auth import JWTAuthVerifier
    return JWTAuthVerifier(auth_config.jwt_secret, algorithms=[auth_config.jwt_algorithm])


def run_api_server(config: AppConfig):
    """Run the API server with properly injected dependencies.

    Args:
        config: Application configuration.
    """
    import uvicorn
    from gallery.api.app import create_app

    logger = logging.getLogger(__name__)

    object_storage, repository = create_storage(config)
    logger.info(f"Storage initialized: images={config.storage.images.type}, db={config.storage.database.type}")

    app = create_app(
        config=config,
        repository=repository,
        object_storage=object_storage,
        auth_verifier=create_auth_verifier(config),
        title="Gallery Backend API",
    )

    logger.info("Starting API server with injected dependencies")

    uvicorn.run(
        app,
        host=config.api.host,
        port=config.api.port,
    )


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Gallery Backend - tagged image gallery API"
    )
    parser.add_argument(
        "--config",
        type=str,
        default="config/settings.yaml",
        help="Path to configuration file",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Override app.log_level from the configuration file",
    )
    args = parser.parse_args()

    try:
        config = AppConfig.from_yaml(args.config)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(args.log_level or config.app.log_level)

    logger = logging.getLogger(__name__)
    logger.info("Starting Gallery Backend")
    logger.info(f"Configuration: {args.config}")

    try:
        run_api_server(config)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
