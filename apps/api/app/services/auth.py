"""Registration, login and current-user lookups."""

from datetime import UTC, datetime
import logging
from uuid import UUID, uuid4

from app.adapters.auth.base import TokenIssuanceFailed
from app.adapters.auth.passwords import PasswordHasher
from app.core.logging_safety import mask_email, safe_log_identifier
from app.errors import ApiError
from app.repositories.base import EmailAlreadyRegisteredError, PrincipalStore
from app.repositories.records import PrincipalRecord
from app.schemas.auth import LoginRequest, LoginResponse, RegisterRequest, UserInfo
from app.schemas.user import UserRole
from app.services.tokens import TokenIssuer

logger = logging.getLogger(__name__)


def _invalid_credentials() -> ApiError:
    return ApiError(status_code=401, code="INVALID_CREDENTIALS", message="Invalid email or password")


class AuthService:
    def __init__(self, *, principals: PrincipalStore, issuer: TokenIssuer, hasher: PasswordHasher) -> None:
        self._principals = principals
        self._issuer = issuer
        self._hasher = hasher

    def register(self, payload: RegisterRequest) -> LoginResponse:
        email = payload.email.strip().lower()
        channel_id = payload.channel_id.strip() if payload.channel_id and payload.channel_id.strip() else None
        record = PrincipalRecord(
            id=uuid4(),
            name=payload.name.strip(),
            surname=payload.surname.strip(),
            email=email,
            role=UserRole.FREE,
            created_at=datetime.now(UTC),
            password_hash=self._hasher.hash(payload.password),
            channel_id=channel_id,
        )
        try:
            self._principals.add_principal(record)
        except EmailAlreadyRegisteredError as exc:
            logger.warning("auth.register_rejected email=%s code=EMAIL_ALREADY_REGISTERED", mask_email(email))
            raise ApiError(status_code=409, code="EMAIL_ALREADY_REGISTERED", message="Email already registered") from exc

        logger.info("auth.registered principal_id=%s", safe_log_identifier(record.id, prefix="pid"))
        return self._login_response(record)

    def login(self, payload: LoginRequest) -> LoginResponse:
        email = payload.email.strip().lower()
        record = self._principals.find_active_principal_by_email(email)
        if record is None:
            logger.warning("auth.login_rejected email=%s reason=unknown_email", mask_email(email))
            raise _invalid_credentials()

        if record.password_hash is None:
            logger.warning("auth.login_rejected email=%s reason=social_account", mask_email(email))
            raise ApiError(
                status_code=400,
                code="SOCIAL_LOGIN_REQUIRED",
                message="This account is linked to a social provider. Please use social login.",
            )

        if not self._hasher.verify(payload.password, record.password_hash):
            logger.warning("auth.login_rejected email=%s reason=bad_password", mask_email(email))
            raise _invalid_credentials()

        logger.info("auth.logged_in principal_id=%s", safe_log_identifier(record.id, prefix="pid"))
        return self._login_response(record)

    def current_user(self, principal_id: UUID) -> UserInfo:
        record = self._principals.get_principal(principal_id)
        if record is None or record.is_deleted:
            raise ApiError(status_code=404, code="PRINCIPAL_NOT_FOUND", message="User not found")
        return to_user_info(record)

    def _login_response(self, record: PrincipalRecord) -> LoginResponse:
        try:
            issued = self._issuer.issue(record)
        except TokenIssuanceFailed as exc:
            raise ApiError(status_code=500, code="TOKEN_ISSUANCE_FAILED", message=str(exc)) from exc
        return LoginResponse(token=issued.token, expires_in=issued.expires_in, user=to_user_info(record))


def to_user_info(record: PrincipalRecord) -> UserInfo:
    return UserInfo(
        id=record.id,
        name=record.name,
        surname=record.surname,
        email=record.email,
        role=record.role,
        channel_id=record.channel_id,
    )
