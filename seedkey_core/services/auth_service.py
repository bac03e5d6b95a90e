"""
Auth Service
============
The challenge/response protocol: challenge issuance, registration and login.

The service holds no state of its own. Everything it remembers goes through
the injected stores, and every flow runs its store calls strictly in order.
"""

from typing import Any, Awaitable, Callable, Mapping, Optional, Type, TypeVar, Union

import structlog

from ..audit import AuditEventType, AuditLogger
from ..config import ResolvedConfig, SeedKeyConfig, resolve_config
from ..crypto.challenge import validate_challenge, verify_challenge_signature
from ..crypto.nonce import generate_id, generate_nonce
from ..errors import ErrorCode, PublicKeyConflictError, SeedKeyError
from ..models import (
    AuthResult,
    Challenge,
    ChallengeAction,
    ChallengeRequest,
    ChallengeResult,
    RegisterRequest,
    StoredChallenge,
    TokenPair,
    User,
    VerifyRequest,
)
from ..storage.interfaces import ChallengeStore, SessionStore, UserStore
from ..utils import now_ms

logger = structlog.get_logger(__name__)

TokenGenerator = Callable[[str, str, str], Awaitable[TokenPair]]

R = TypeVar("R")

_ACTIONS = {action.value for action in ChallengeAction}


def _coerce(request: Union[R, Mapping[str, Any]], request_type: Type[R]) -> R:
    """Accept either a request object or its camelCase wire dict."""
    if isinstance(request, Mapping):
        return request_type.from_dict(request)
    return request


def _short(nonce: str) -> str:
    return nonce[:8]


class AuthService:
    """
    Orchestrates the SeedKey protocol flows.

    Usage:
        stores = create_memory_stores()
        service = AuthService(
            SeedKeyConfig(allowed_domains=["example.com"]),
            stores.users, stores.challenges, stores.sessions,
            generate_tokens=JWTTokenIssuer(secret),
        )
        result = await service.create_challenge({"publicKey": pk, "action": "register"})
    """

    def __init__(
        self,
        config: Union[SeedKeyConfig, ResolvedConfig],
        users: UserStore,
        challenges: ChallengeStore,
        sessions: SessionStore,
        generate_tokens: TokenGenerator,
        audit: Optional[AuditLogger] = None,
    ):
        if isinstance(config, SeedKeyConfig):
            config = resolve_config(config)
        self.config = config
        self.users = users
        self.challenges = challenges
        self.sessions = sessions
        self.generate_tokens = generate_tokens
        self.audit = audit

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _record(self, event_type: AuditEventType, outcome: str = "success", **kwargs) -> None:
        if self.audit is not None:
            self.audit.log(event_type, outcome=outcome, **kwargs)

    def _reject(
        self,
        flow: str,
        code: ErrorCode,
        message: str,
        status_code: int = 400,
        hint: Optional[str] = None,
        **context,
    ) -> SeedKeyError:
        """Log and audit a rejection; the caller raises the returned error."""
        logger.warning(f"{flow} rejected", code=code.value, reason=message, **context)

        if code == ErrorCode.NONCE_REUSED:
            self._record(
                AuditEventType.AUTH_REPLAY_BLOCKED,
                outcome="blocked",
                payload={"flow": flow, **context},
            )
        else:
            self._record(
                AuditEventType.AUTH_FAILED,
                outcome="failure",
                payload={"flow": flow, "code": code.value, **context},
            )
        return SeedKeyError(code, message, status_code, hint)

    # -------------------------------------------------------------------------
    # Flows
    # -------------------------------------------------------------------------

    async def create_challenge(
        self,
        request: Union[ChallengeRequest, Mapping[str, Any]],
    ) -> ChallengeResult:
        """
        Issue a challenge for registration or login.

        Unknown users (authenticate) and taken keys (register) come back as
        failed results with a hint naming the other flow.
        """
        request = _coerce(request, ChallengeRequest)
        public_key = request.public_key
        action = getattr(request.action, "value", request.action)

        if not public_key or not action:
            return ChallengeResult.fail("publicKey and action are required")

        if not isinstance(action, str) or action not in _ACTIONS:
            return ChallengeResult.fail('action must be "authenticate" or "register"')

        if action == ChallengeAction.AUTHENTICATE.value:
            user = await self.users.find_by_public_key(public_key)
            if user is None:
                logger.info("Challenge refused, unknown key", action=action)
                return ChallengeResult.fail(ErrorCode.USER_NOT_FOUND.value, hint="register")
        else:
            if await self.users.public_key_exists(public_key):
                logger.info("Challenge refused, key already registered", action=action)
                return ChallengeResult.fail(ErrorCode.USER_EXISTS.value, hint="authenticate")

        now = now_ms()
        challenge_id = generate_id("ch")
        challenge = Challenge(
            nonce=generate_nonce(),
            timestamp=now,
            domain=self.config.current_domain,
            action=action,
            expires_at=now + self.config.challenge_ttl,
        )

        await self.challenges.save(StoredChallenge.from_challenge(
            challenge,
            id=challenge_id,
            created_at=now,
            public_key=public_key,
            used=False,
        ))

        logger.info(
            "Challenge created",
            challenge_id=challenge_id,
            action=action,
            nonce=_short(challenge.nonce),
        )
        self._record(
            AuditEventType.CHALLENGE_CREATED,
            resource_id=challenge_id,
            payload={"action": action, "domain": challenge.domain},
        )
        return ChallengeResult.ok(challenge, challenge_id)

    async def register(
        self,
        request: Union[RegisterRequest, Mapping[str, Any]],
    ) -> AuthResult:
        """
        Create a user from a signed register challenge.

        Raises:
            SeedKeyError: On any protocol violation. Nothing is persisted
                unless the signature checks out.
        """
        flow = "Registration"
        try:
            request = _coerce(request, RegisterRequest)
        except (KeyError, ValueError, TypeError) as e:
            raise self._reject(flow, ErrorCode.VALIDATION_ERROR, f"Malformed challenge: {e}")

        public_key = request.public_key
        challenge = request.challenge
        signature = request.signature

        if not public_key or not challenge or not signature:
            raise self._reject(
                flow, ErrorCode.VALIDATION_ERROR,
                "publicKey, challenge, and signature are required",
            )

        if challenge.action != ChallengeAction.REGISTER.value:
            raise self._reject(
                flow, ErrorCode.INVALID_CHALLENGE,
                'Challenge action must be "register"',
            )

        if await self.users.public_key_exists(public_key):
            raise self._reject(
                flow, ErrorCode.USER_EXISTS,
                "User with this public key already exists",
                status_code=409, hint="authenticate",
            )

        if await self.challenges.is_nonce_used(challenge.nonce):
            raise self._reject(
                flow, ErrorCode.NONCE_REUSED,
                "This challenge has already been used",
                nonce=_short(challenge.nonce),
            )

        validity = validate_challenge(challenge, self.config.allowed_domains)
        if not validity.valid:
            raise self._reject(
                flow, ErrorCode.CHALLENGE_EXPIRED,
                validity.error or "Challenge validation failed",
            )

        if not verify_challenge_signature(challenge, signature, public_key):
            raise self._reject(
                flow, ErrorCode.INVALID_SIGNATURE,
                "Signature verification failed",
                status_code=401,
            )

        try:
            user = await self.users.create(public_key, request.metadata)
        except PublicKeyConflictError:
            # Lost a race with a concurrent registration of the same key
            raise self._reject(
                flow, ErrorCode.USER_EXISTS,
                "User with this public key already exists",
                status_code=409, hint="authenticate",
            )
        key_info = user.public_key

        await self.challenges.save(StoredChallenge.from_challenge(
            challenge,
            id=generate_id("ch"),
            created_at=now_ms(),
            public_key=public_key,
            used=True,
        ))

        session = await self.sessions.create(user.id, key_info.id, self.config.session_ttl)
        tokens = await self.generate_tokens(user.id, key_info.id, session.id)

        logger.info("User registered", user_id=user.id, key_id=key_info.id, session_id=session.id)
        self._record(
            AuditEventType.USER_REGISTERED,
            actor_id=user.id,
            resource_id=session.id,
            payload={"key_id": key_info.id, "device_name": key_info.device_name},
        )
        return AuthResult(user=user, key_info=key_info, session=session, tokens=tokens)

    async def verify(
        self,
        request: Union[VerifyRequest, Mapping[str, Any]],
    ) -> AuthResult:
        """
        Log a user in from a signed authenticate challenge.

        The challenge is consumed with an atomic `mark_as_used`; if a
        concurrent call got there first this one fails with NONCE_REUSED,
        so each challenge yields at most one session.

        Raises:
            SeedKeyError: On any protocol violation
        """
        flow = "Login"
        try:
            request = _coerce(request, VerifyRequest)
        except (KeyError, ValueError, TypeError) as e:
            raise self._reject(flow, ErrorCode.VALIDATION_ERROR, f"Malformed challenge: {e}")

        challenge_id = request.challenge_id
        challenge = request.challenge
        signature = request.signature
        public_key = request.public_key

        if not challenge_id or not challenge or not signature or not public_key:
            raise self._reject(
                flow, ErrorCode.VALIDATION_ERROR,
                "challengeId, challenge, signature, and publicKey are required",
            )

        if challenge.action != ChallengeAction.AUTHENTICATE.value:
            raise self._reject(
                flow, ErrorCode.INVALID_CHALLENGE,
                'Challenge action must be "authenticate"',
            )

        stored = await self.challenges.find_by_id(challenge_id)
        if stored is None:
            raise self._reject(
                flow, ErrorCode.CHALLENGE_NOT_FOUND, "Challenge not found",
                challenge_id=challenge_id,
            )

        if stored.used:
            raise self._reject(
                flow, ErrorCode.NONCE_REUSED,
                "This challenge has already been used",
                challenge_id=challenge_id,
            )

        if await self.challenges.is_nonce_used(challenge.nonce):
            raise self._reject(
                flow, ErrorCode.NONCE_REUSED,
                "This challenge has already been used",
                challenge_id=challenge_id, nonce=_short(challenge.nonce),
            )

        # The submitted body must be the one issued under challenge_id
        if stored.action != ChallengeAction.AUTHENTICATE.value:
            raise self._reject(
                flow, ErrorCode.INVALID_CHALLENGE,
                'Challenge action must be "authenticate"',
                challenge_id=challenge_id,
            )

        if stored.nonce != challenge.nonce:
            raise self._reject(
                flow, ErrorCode.INVALID_CHALLENGE,
                "Challenge does not match the issued challenge",
                challenge_id=challenge_id, nonce=_short(challenge.nonce),
            )

        if stored.public_key and stored.public_key != public_key:
            raise self._reject(
                flow, ErrorCode.INVALID_CHALLENGE,
                "Challenge was issued for a different public key",
                challenge_id=challenge_id,
            )

        validity = validate_challenge(challenge, self.config.allowed_domains)
        if not validity.valid:
            raise self._reject(
                flow, ErrorCode.CHALLENGE_EXPIRED,
                validity.error or "Challenge validation failed",
                challenge_id=challenge_id,
            )

        user = await self.users.find_by_public_key(public_key)
        if user is None:
            raise self._reject(
                flow, ErrorCode.USER_NOT_FOUND,
                "No user found with this public key",
                status_code=404, hint="register",
            )

        if not verify_challenge_signature(challenge, signature, public_key):
            raise self._reject(
                flow, ErrorCode.INVALID_SIGNATURE,
                "Signature verification failed",
                status_code=401, challenge_id=challenge_id,
            )

        if not await self.challenges.mark_as_used(challenge_id):
            raise self._reject(
                flow, ErrorCode.NONCE_REUSED,
                "This challenge has already been used",
                challenge_id=challenge_id,
            )

        await self.users.update_last_login(user.id, public_key)

        key_info = user.public_key
        session = await self.sessions.create(user.id, key_info.id, self.config.session_ttl)
        tokens = await self.generate_tokens(user.id, key_info.id, session.id)

        logger.info("User logged in", user_id=user.id, session_id=session.id)
        self._record(
            AuditEventType.AUTH_LOGIN,
            actor_id=user.id,
            resource_id=session.id,
            payload={"key_id": key_info.id, "challenge_id": challenge_id},
        )
        return AuthResult(user=user, key_info=key_info, session=session, tokens=tokens)

    async def get_user(self, user_id: str) -> Optional[User]:
        """Look up a user by ID."""
        return await self.users.find_by_id(user_id)
