"""
Configuration validation for boardbridge.

Runs during application startup so misconfiguration shows up in the logs before
the first session bootstrap fails.
"""

from __future__ import annotations

from typing import Any

from .config import MIN_AUTH_SECRET_LENGTH, Settings, settings
from .database.connection import check_directory_database
from .logging import get_logger

logger = get_logger(__name__)


class ValidationError(Exception):
    """Raised when application validation fails."""

    pass


async def validate_database_connection() -> dict[str, Any]:
    """
    Validate that the directory database is accessible and responsive.

    Returns a dictionary with validation results and connection details.
    """
    results = {
        "valid": True,
        "warnings": [],
        "errors": [],
        "connection_info": None,
    }

    success, error_message = await check_directory_database()

    if success:
        results["connection_info"] = {
            "status": "connected",
            "message": "Database connection successful",
        }
        logger.info("Database connection validation successful")
    else:
        results["valid"] = False
        results["errors"].append(error_message)
        logger.error("Database connection validation failed", error=error_message)

    return results


def validate_auth_configuration(config: Settings | None = None) -> dict[str, Any]:
    """
    Validate the auth subsystem and derived credential configuration.

    Returns validation results and security recommendations.
    """
    config = config or settings
    production = config.environment.lower() in ("production", "prod")
    results = {
        "valid": True,
        "warnings": [],
        "errors": [],
        "auth_info": {
            "provider": config.auth_provider,
            "main_admin_configured": bool(config.main_admin_email),
            "host_audience_checked": bool(config.host_app_client_id),
        },
    }

    if not config.auth_secret:
        error = "BOARDBRIDGE_AUTH_SECRET is not configured - derived credentials cannot be issued"
        results["errors"].append(error)
        results["valid"] = False
        logger.error(error)
    elif len(config.auth_secret) < MIN_AUTH_SECRET_LENGTH:
        error = f"BOARDBRIDGE_AUTH_SECRET must be at least {MIN_AUTH_SECRET_LENGTH} characters"
        results["errors"].append(error)
        results["valid"] = False
        logger.error(error)

    if not config.host_app_secret:
        error = (
            "BOARDBRIDGE_HOST_APP_SECRET is not configured - "
            "host identity tokens cannot be verified"
        )
        results["errors"].append(error)
        results["valid"] = False
        logger.error(error)

    if config.auth_provider == "none":
        if production:
            error = "In-memory auth provider detected in production environment"
            results["errors"].append(error)
            results["valid"] = False
            logger.error(error)
        else:
            logger.info("Auth validation: In-memory auth provider enabled for development")

    elif config.auth_provider == "supabase":
        if not config.supabase_url or not config.supabase_anon_key:
            error = "Supabase auth enabled but URL or anon key not configured"
            results["errors"].append(error)
            results["valid"] = False
            logger.error(error)
        else:
            logger.info("Auth validation: Supabase auth configured")

    else:
        error = f"Unsupported auth provider: {config.auth_provider}"
        results["errors"].append(error)
        results["valid"] = False
        logger.error(error)

    if not config.main_admin_email:
        warning = "BOARDBRIDGE_MAIN_ADMIN_EMAIL is not set - no user will be bootstrapped as admin"
        results["warnings"].append(warning)
        logger.warning(warning)

    return results


async def validate_startup_configuration(config: Settings | None = None) -> dict[str, Any]:
    """
    Comprehensive startup validation.

    This function should be called during application startup to ensure
    all critical configuration is valid.
    """
    config = config or settings
    logger.info("Starting application configuration validation")

    db_results = await validate_database_connection()
    # Auth can validate without DB
    auth_results = validate_auth_configuration(config)

    combined_results = {
        "overall_valid": db_results["valid"] and auth_results["valid"],
        "database": db_results,
        "auth": auth_results,
        "environment": {
            "auth_provider": config.auth_provider,
            "environment": config.environment,
            "debug": config.debug,
        },
    }

    if combined_results["overall_valid"]:
        logger.info("Application configuration validation completed successfully")
    else:
        logger.error(
            "Application configuration validation failed",
            errors=db_results["errors"] + auth_results["errors"],
        )

    all_warnings = db_results["warnings"] + auth_results["warnings"]
    if all_warnings:
        logger.warning("Configuration warnings detected", warnings=all_warnings)

    return combined_results


def get_startup_recommendations(validation_results: dict[str, Any]) -> list[str]:
    """
    Generate startup recommendations based on validation results.
    """
    recommendations = []

    if not validation_results.get("database", {}).get("valid", False):
        recommendations.append(
            "Database connection failed - check that PostgreSQL is running and accessible"
        )
        return recommendations  # Return early if database is not accessible

    auth_info = validation_results["auth"]["auth_info"]
    if not auth_info["main_admin_configured"]:
        recommendations.append(
            "Set BOARDBRIDGE_MAIN_ADMIN_EMAIL so the first administrator can sign in"
        )
    if auth_info["provider"] == "none":
        recommendations.append(
            "Configure the supabase auth provider for non-development environments"
        )

    if not validation_results["overall_valid"]:
        recommendations.append("Fix configuration errors before deploying to production")

    if validation_results["overall_valid"] and not recommendations:
        recommendations.append("Session bridge configuration is ready for operation")

    return recommendations
