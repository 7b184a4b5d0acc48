"""Submission through a signing relay holding the bundler integration.

The relay receives the batch together with the subscriber's delegated key
material, submits a single user operation and answers once it has a receipt.
"""
import logging
import ssl

import aiohttp
import certifi

from ..config import ExecutorConfig
from ..models import Call, SubmissionResult, Subscription

logger = logging.getLogger(__name__)


class RelaySubmitter:
    """Posts call batches to the configured relay and waits for the result."""

    def __init__(self, config: ExecutorConfig) -> None:
        self.relay_url = config.relay_url
        self.timeout = config.timeout_seconds

    async def submit(
        self, subscription: Subscription, calls: list[Call]
    ) -> SubmissionResult:
        if not subscription.serialized_session_key:
            return SubmissionResult(success=False, error="No serialized session key")
        if not self.relay_url:
            return SubmissionResult(success=False, error="Submission relay not configured")
        if not calls:
            return SubmissionResult(success=False, error="No calls to execute")

        payload = {
            "smartAccount": subscription.smart_account,
            "sessionKeyAddress": subscription.session_key_address,
            "sessionPrivateKey": subscription.session_private_key,
            "serializedSessionKey": subscription.serialized_session_key,
            "calls": [
                {"to": c.to, "data": c.data, "value": str(c.value)} for c in calls
            ],
        }

        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        try:
            async with aiohttp.ClientSession(connector=connector) as session:
                async with session.post(
                    self.relay_url,
                    json=payload,
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as response:
                    data = await response.json()
                    if response.status != 200 or not data.get("success"):
                        error = data.get("error") or f"HTTP {response.status}"
                        logger.error(
                            "Submission failed for %s: %s", subscription.smart_account, error
                        )
                        return SubmissionResult(success=False, error=error)

                    logger.info(
                        "UserOp %s confirmed in tx %s",
                        data.get("userOpHash"),
                        data.get("txHash"),
                    )
                    return SubmissionResult(
                        success=True,
                        tx_hash=data.get("txHash"),
                        user_op_hash=data.get("userOpHash"),
                    )
        except Exception as e:
            logger.error("Submission error for %s: %s", subscription.smart_account, e)
            return SubmissionResult(success=False, error=str(e))
