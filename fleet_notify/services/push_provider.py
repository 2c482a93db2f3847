import asyncio
import json
import logging
import os
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import firebase_admin
from firebase_admin import credentials, messaging

from fleet_notify.config import Settings, settings as default_settings
from fleet_notify.errors import PushGatewayUnavailableError
from fleet_notify.models.schemas import BatchResult, PushPayload, TokenResponse
from fleet_notify.services.circuit_breaker import CircuitBreaker

logger = logging.getLogger(__name__)

# Hard ceiling of FCM multicast sends
FCM_MULTICAST_LIMIT = 500


def init_firebase(config: Settings = default_settings) -> Optional[firebase_admin.App]:
    """
    Initialize the Firebase Admin SDK.

    Credential sources, in order of preference:
      1. FIREBASE_SERVICE_ACCOUNT_JSON (service account as inline JSON)
      2. GOOGLE_APPLICATION_CREDENTIALS (application default credentials)
      3. FIREBASE_CREDENTIALS_FILE (local service account file, for development)

    Returns the default app, or None when no credentials are available. A
    missing or broken credential only disables push; it never stops startup.
    """
    if firebase_admin._apps:
        return firebase_admin.get_app()

    try:
        if config.firebase_service_account_json:
            cred = credentials.Certificate(json.loads(config.firebase_service_account_json))
            app = firebase_admin.initialize_app(cred)
            logger.info("Firebase admin initialized from FIREBASE_SERVICE_ACCOUNT_JSON")
            return app

        if config.google_application_credentials:
            app = firebase_admin.initialize_app()
            logger.info("Firebase admin initialized using GOOGLE_APPLICATION_CREDENTIALS")
            return app

        if config.firebase_credentials_file and os.path.exists(config.firebase_credentials_file):
            cred = credentials.Certificate(config.firebase_credentials_file)
            app = firebase_admin.initialize_app(cred)
            logger.info(f"Firebase admin initialized from {config.firebase_credentials_file}")
            return app
    except (ValueError, OSError) as e:
        logger.error(f"Failed to initialize Firebase admin: {e}")
        return None

    logger.warning(
        "No Firebase credentials found. Set FIREBASE_SERVICE_ACCOUNT_JSON or "
        "GOOGLE_APPLICATION_CREDENTIALS. Push notifications are disabled."
    )
    return None


class FirebaseGateway:
    """Thin blocking wrapper over FCM multicast for one Firebase app"""

    def __init__(self, app: Optional[firebase_admin.App] = None):
        self.app = app

    @property
    def initialized(self) -> bool:
        return self.app is not None

    def send_multicast(
        self,
        tokens: List[str],
        title: str,
        body: str,
        data: Dict[str, str]
    ) -> messaging.BatchResponse:
        if not self.initialized:
            raise PushGatewayUnavailableError("Firebase app is not initialized")

        message = messaging.MulticastMessage(
            tokens=tokens,
            notification=messaging.Notification(title=title, body=body),
            data=data
        )
        return messaging.send_each_for_multicast(message, app=self.app)


def stringify_data(data: Optional[Mapping[Any, Any]]) -> Dict[str, str]:
    """FCM data fields accept string keys and values only"""
    return {str(k): str(v) for k, v in (data or {}).items()}


class PushDispatcher:
    """
    Submits one multicast push per call.

    Tokens beyond batch_limit are dropped, not chunked. Transport failures
    (gateway errors, timeouts, an open circuit) propagate to the caller.
    """

    def __init__(
        self,
        gateway: FirebaseGateway,
        batch_limit: int = FCM_MULTICAST_LIMIT,
        timeout: float = 10,
        breaker: Optional[CircuitBreaker] = None
    ):
        self.gateway = gateway
        self.batch_limit = min(batch_limit, FCM_MULTICAST_LIMIT)
        self.timeout = timeout
        self.breaker = breaker or CircuitBreaker()

    async def send_batch(
        self,
        tokens: Sequence[str],
        payload: Union[PushPayload, Mapping[str, Any]]
    ) -> BatchResult:
        if not tokens:
            return BatchResult(successCount=0, failureCount=0)

        if not isinstance(payload, PushPayload):
            payload = PushPayload(**payload)

        batch = list(tokens)[:self.batch_limit]
        if len(tokens) > len(batch):
            logger.warning(f"Dropping {len(tokens) - len(batch)} tokens beyond the {self.batch_limit} token limit")

        response = await self.breaker.call(
            self._send, batch, payload.title, payload.body, stringify_data(payload.data)
        )

        result = BatchResult(
            successCount=response.success_count,
            failureCount=response.failure_count,
            responses=[
                TokenResponse(
                    token=token,
                    success=r.success,
                    messageId=r.message_id,
                    error=str(r.exception) if r.exception else None
                )
                for token, r in zip(batch, response.responses)
            ]
        )
        logger.info(
            f"Push batch sent: {result.successCount}/{len(batch)} delivered",
            extra={"successful": result.successCount, "failed": result.failureCount}
        )
        return result

    async def _send(self, tokens: List[str], title: str, body: str, data: Dict[str, str]):
        """Run the blocking FCM call in the default executor with a timeout"""
        loop = asyncio.get_running_loop()
        return await asyncio.wait_for(
            loop.run_in_executor(None, self.gateway.send_multicast, tokens, title, body, data),
            timeout=self.timeout
        )
