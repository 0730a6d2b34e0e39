"""
Credential resolution for the remote backend.
"""

import boto3
from botocore.exceptions import BotoCoreError

from ..exceptions import MissingCredentialsError
from ..logging_config import get_logger
from ..settings import StoreSettings
from .signer import Credentials

logger = get_logger(__name__)


def resolve_credentials(settings: StoreSettings) -> Credentials:
    """
    Resolve the key pair used for signing.

    Explicit settings win; otherwise the boto3 session credential chain
    (profile, shared config, instance role) is consulted.

    Raises:
        MissingCredentialsError: If no complete key pair can be found
    """
    if settings.access_key_id or settings.secret_access_key:
        if not (settings.access_key_id and settings.secret_access_key):
            raise MissingCredentialsError(
                "AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY must be set together"
            )
        logger.debug("Using credentials from settings")
        return Credentials(
            settings.access_key_id, settings.secret_access_key, settings.session_token
        )

    try:
        session = boto3.Session(profile_name=settings.profile, region_name=settings.region)
        found = session.get_credentials()
    except BotoCoreError as e:
        raise MissingCredentialsError(f"Could not resolve AWS credentials: {e}") from e

    if found is None:
        raise MissingCredentialsError(
            "No AWS credentials found. Set AWS_ACCESS_KEY_ID/AWS_SECRET_ACCESS_KEY "
            "or configure a profile."
        )

    frozen = found.get_frozen_credentials()
    logger.debug(f"Using credentials from boto3 session (method: {found.method})")
    return Credentials(frozen.access_key, frozen.secret_key, frozen.token)
