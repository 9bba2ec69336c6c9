"""aws_clients.py — Lazy-singleton KMS client and credential decryption.

The client is created on first use and reused across warm invocations.
"""
from __future__ import annotations

import base64
import binascii
import os

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from config import KMS_REGION, logger
from errors import ConfigurationError

__all__ = [
    "_decrypt_env_value",
    "_get_kms",
    "_kms",
]

# ---------------------------------------------------------------------------
# AWS client singletons
# ---------------------------------------------------------------------------

_kms = None


def _get_kms():
    global _kms
    if _kms is None:
        _kms = boto3.client(
            "kms",
            region_name=KMS_REGION,
            config=Config(retries={"max_attempts": 3, "mode": "standard"}),
        )
    return _kms


# ---------------------------------------------------------------------------
# Decryption
# ---------------------------------------------------------------------------


def _decrypt_env_value(ciphertext_b64: str) -> str:
    """Decrypt a base64 KMS ciphertext taken from a Lambda environment variable.

    Values encrypted through the Lambda console helpers are bound to an
    encryption context naming the function, so the context is sent whenever
    AWS_LAMBDA_FUNCTION_NAME is available.
    """
    try:
        blob = base64.b64decode(ciphertext_b64, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ConfigurationError("encrypted value is not valid base64") from exc

    kwargs = {"CiphertextBlob": blob}
    function_name = os.environ.get("AWS_LAMBDA_FUNCTION_NAME", "")
    if function_name:
        kwargs["EncryptionContext"] = {"LambdaFunctionName": function_name}

    try:
        resp = _get_kms().decrypt(**kwargs)
    except (BotoCoreError, ClientError) as exc:
        logger.error("KMS decrypt failed: %s", exc)
        raise ConfigurationError(f"unable to decrypt credentials: {exc}") from exc

    plaintext = resp.get("Plaintext") or b""
    if isinstance(plaintext, bytes):
        return plaintext.decode("utf-8")
    return str(plaintext)
