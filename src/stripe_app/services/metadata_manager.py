"""Encrypted per-tenant metadata storage backed by SSM Parameter Store.

Each tenant (identified by its Saleor API URL) owns one SecureString
parameter per logical key. KMS encrypts the value at rest and SSM decrypts it
on read, so callers only ever handle plaintext JSON.
"""

import base64
import hashlib
import os
from functools import lru_cache
from typing import Protocol

import boto3
from botocore.exceptions import ClientError

from stripe_app.models.errors import metadata_store_error
from stripe_app.utils.logging import get_logger

logger = get_logger(__name__)


class MetadataManager(Protocol):
    """Key-value backend holding one encrypted record per tenant and key."""

    def get(self, key: str, saleor_api_url: str) -> str | None: ...

    def set(self, key: str, value: str, saleor_api_url: str) -> None: ...

    def encrypt(self, plaintext: str) -> str: ...


class SSMMetadataManager:
    """MetadataManager storing records as SSM SecureString parameters.

    Usage:
        manager = SSMMetadataManager()
        manager.set("stripe-app-config-v1", '{"configurations": []}', "https://shop.example/graphql/")
        raw = manager.get("stripe-app-config-v1", "https://shop.example/graphql/")
    """

    def __init__(
        self,
        prefix: str | None = None,
        kms_key_id: str | None = None,
        environment: str | None = None,
    ) -> None:
        """Initialize the SSM and KMS clients.

        Args:
            prefix: Parameter path prefix. Defaults to METADATA_PARAMETER_PREFIX
                or /stripe-app/{environment}.
            kms_key_id: KMS key for SecureString values and exports. Defaults to
                METADATA_KMS_KEY_ID. When unset, SecureStrings use the AWS
                managed SSM key and encrypt() is unavailable.
            environment: Environment name. Defaults to ENVIRONMENT env var.
        """
        environment = environment or os.environ.get("ENVIRONMENT", "dev")
        self._prefix = (
            prefix
            or os.environ.get("METADATA_PARAMETER_PREFIX")
            or f"/stripe-app/{environment}"
        ).rstrip("/")
        self._kms_key_id = kms_key_id or os.environ.get("METADATA_KMS_KEY_ID")
        self._ssm = boto3.client("ssm")
        self._kms = boto3.client("kms")

    def parameter_name(self, key: str, saleor_api_url: str) -> str:
        """Build the parameter path for a tenant.

        SSM names only allow [a-zA-Z0-9_.-/], so the URL is hashed.
        """
        tenant = hashlib.sha256(saleor_api_url.encode("utf-8")).hexdigest()[:32]
        return f"{self._prefix}/tenants/{tenant}/{key}"

    def get(self, key: str, saleor_api_url: str) -> str | None:
        """Read and decrypt a record.

        Returns:
            The plaintext value, or None if the tenant has no record yet.

        Raises:
            PaymentAppError: METADATA_STORE_ERROR if SSM cannot be read.
        """
        name = self.parameter_name(key, saleor_api_url)
        try:
            response = self._ssm.get_parameter(Name=name, WithDecryption=True)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code == "ParameterNotFound":
                logger.debug("No metadata stored at %s", name)
                return None
            logger.error("Failed to read metadata %s: %s", name, error_code)
            raise metadata_store_error(f"Failed to read {name}: {error_code}") from e
        return response["Parameter"]["Value"]

    def set(self, key: str, value: str, saleor_api_url: str) -> None:
        """Encrypt and write a record, replacing any previous value.

        Raises:
            PaymentAppError: METADATA_STORE_ERROR if SSM rejects the write.
        """
        name = self.parameter_name(key, saleor_api_url)
        params = {
            "Name": name,
            "Value": value,
            "Type": "SecureString",
            "Overwrite": True,
        }
        if self._kms_key_id:
            params["KeyId"] = self._kms_key_id
        try:
            self._ssm.put_parameter(**params)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            logger.error("Failed to write metadata %s: %s", name, error_code)
            raise metadata_store_error(f"Failed to write {name}: {error_code}") from e
        logger.debug("Metadata written to %s", name)

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a value with KMS for export outside SSM.

        The AWS managed SSM key only serves calls made through SSM, so exports
        need a customer managed key.

        Returns:
            Base64-encoded ciphertext blob.

        Raises:
            PaymentAppError: METADATA_STORE_ERROR if no KMS key is configured
                or KMS refuses the call.
        """
        if not self._kms_key_id:
            logger.error("Metadata export requested without METADATA_KMS_KEY_ID")
            raise metadata_store_error("METADATA_KMS_KEY_ID is required to encrypt exports")

        try:
            response = self._kms.encrypt(
                KeyId=self._kms_key_id,
                Plaintext=plaintext.encode("utf-8"),
            )
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            raise metadata_store_error(f"Failed to encrypt metadata: {error_code}") from e
        return base64.b64encode(response["CiphertextBlob"]).decode("ascii")


@lru_cache(maxsize=1)
def get_metadata_manager() -> SSMMetadataManager:
    """Get the shared SSMMetadataManager instance (singleton pattern)."""
    return SSMMetadataManager()
