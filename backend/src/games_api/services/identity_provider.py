"""Cognito user pool calls behind the /auth endpoints."""

from __future__ import annotations

from typing import Any

from botocore.exceptions import BotoCoreError
from botocore.exceptions import ClientError

from games_api.exceptions import AppError
from games_api.exceptions import AuthenticationError
from games_api.exceptions import ConflictError
from games_api.exceptions import DependencyError
from games_api.exceptions import ValidationError
from games_api.utils.logging import get_logger

logger = get_logger(__name__)

# Fixed client messages; Cognito's own text is only logged.
_CLIENT_ERRORS: dict[str, tuple[type[AppError], str]] = {
    "NotAuthorizedException": (AuthenticationError, "Incorrect username or password"),
    "UserNotFoundException": (AuthenticationError, "Incorrect username or password"),
    "UserNotConfirmedException": (AuthenticationError, "User is not confirmed"),
    "UsernameExistsException": (ConflictError, "Username is already registered"),
    "CodeMismatchException": (ValidationError, "Invalid confirmation code"),
    "ExpiredCodeException": (ValidationError, "Confirmation code has expired"),
    "InvalidPasswordException": (ValidationError, "Password does not meet the policy"),
    "InvalidParameterException": (ValidationError, "Invalid request parameters"),
}


def _translate_error(exc: ClientError, operation: str) -> AppError:
    """Map a Cognito error to the response the caller should get."""
    error = exc.response.get("Error", {})
    code = error.get("Code", "Unknown")

    if code in _CLIENT_ERRORS:
        error_class, message = _CLIENT_ERRORS[code]
        logger.info(
            f"Cognito {operation} rejected: {code}",
            extra={"cognito_message": error.get("Message")},
        )
        return error_class(message)

    logger.error(f"Cognito {operation} failed: {code}")
    return DependencyError()


class CognitoIdentityProvider:
    """Sign-up, confirmation and sign-in against one app client.

    Args:
        client: A boto3 ``cognito-idp`` client.
        client_id: The user pool app client id.
    """

    def __init__(self, client: Any, client_id: str):
        self._client = client
        self._client_id = client_id

    def sign_up(self, username: str, password: str, email: str) -> dict[str, Any]:
        """Register a new user; Cognito sends the confirmation code."""
        response = self._call(
            "sign_up",
            ClientId=self._client_id,
            Username=username,
            Password=password,
            UserAttributes=[{"Name": "email", "Value": email}],
        )
        return {
            "username": username,
            "confirmed": bool(response.get("UserConfirmed")),
            "userSub": response.get("UserSub"),
        }

    def confirm_sign_up(self, username: str, code: str) -> None:
        self._call(
            "confirm_sign_up",
            ClientId=self._client_id,
            Username=username,
            ConfirmationCode=code,
        )

    def sign_in(self, username: str, password: str) -> str:
        """Authenticate with username and password.

        Returns:
            The ID token, which carries the email claim used for ownership.

        Raises:
            AuthenticationError: If the credentials are rejected or Cognito
                answers with a challenge instead of tokens.
        """
        response = self._call(
            "initiate_auth",
            ClientId=self._client_id,
            AuthFlow="USER_PASSWORD_AUTH",
            AuthParameters={"USERNAME": username, "PASSWORD": password},
        )
        result = response.get("AuthenticationResult") or {}
        token = result.get("IdToken")
        if not token:
            logger.warning(
                "Sign-in returned no tokens",
                extra={"challenge": response.get("ChallengeName")},
            )
            raise AuthenticationError("User sign-in failed")
        return token

    def _call(self, operation: str, **params: Any) -> dict[str, Any]:
        try:
            return getattr(self._client, operation)(**params)
        except ClientError as exc:
            raise _translate_error(exc, operation) from exc
        except BotoCoreError as exc:
            logger.error(f"Cognito {operation} failed: {type(exc).__name__}")
            raise DependencyError() from exc
