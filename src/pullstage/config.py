"""Producer options and the configuration shared through the registry."""

from dataclasses import dataclass
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictInt,
    StrictStr,
    ValidationError,
    field_validator,
)

from pullstage.auth import MetadataServerToken
from pullstage.exceptions import ConfigurationError
from pullstage.models.request import PullRequest
from pullstage.protocols.client import WireClient
from pullstage.protocols.token import TokenProvider

DEFAULT_MAX_NUMBER_OF_MESSAGES = 10
DEFAULT_RECEIVE_INTERVAL = 5000
DEFAULT_SCOPE = "https://www.googleapis.com/auth/pubsub"

_CLIENT_METHODS = ("init", "receive_messages", "acknowledge")

_EXPECTATIONS = {
    "subscription": "a valid subscription name",
    "max_number_of_messages": "a positive integer",
    "return_immediately": "a boolean value",
    "receive_interval": "a non-negative integer",
    "scope": "a non empty string",
    "token_provider": "an object implementing TokenProvider",
    "client": "an object implementing WireClient",
}


@dataclass(frozen=True)
class Subscription:
    """Subscription identity parsed from projects/<id>/subscriptions/<id>."""

    project_id: str
    subscription_id: str

    @classmethod
    def parse(cls, name: str) -> "Subscription":
        parts = name.split("/")
        if len(parts) != 4 or parts[0] != "projects" or parts[2] != "subscriptions":
            raise ValueError(f"malformed subscription name {name!r}")
        if not parts[1] or not parts[3]:
            raise ValueError(f"malformed subscription name {name!r}")
        return cls(project_id=parts[1], subscription_id=parts[3])

    @property
    def path(self) -> str:
        return f"projects/{self.project_id}/subscriptions/{self.subscription_id}"

    def __str__(self) -> str:
        return self.path


@dataclass(frozen=True)
class TokenOptions:
    """Credential policy: which provider to ask and for which scope."""

    provider: TokenProvider
    scope: str


@dataclass(frozen=True)
class ConsumerConfig:
    """Registry entry shared by every message a producer emits."""

    subscription: Subscription
    token: TokenOptions


def _default_client() -> WireClient:
    from pullstage.adapters.google import GoogleApiClient

    return GoogleApiClient()


class ProducerOptions(BaseModel):
    """
    Validated producer configuration.

    Build it with from_kwargs() to get ConfigurationError instead of a
    pydantic ValidationError. Defaults are lazy: constructing the options
    never opens a connection.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True, extra="forbid")

    subscription: Subscription
    max_number_of_messages: StrictInt = Field(DEFAULT_MAX_NUMBER_OF_MESSAGES, ge=1)
    return_immediately: Optional[StrictBool] = None
    receive_interval: StrictInt = Field(DEFAULT_RECEIVE_INTERVAL, ge=0)
    scope: StrictStr = Field(DEFAULT_SCOPE, min_length=1)
    token_provider: Any = Field(default_factory=MetadataServerToken)
    client: Any = Field(default_factory=_default_client)

    @field_validator("subscription", mode="before")
    @classmethod
    def parse_subscription(cls, value: Any) -> Any:
        if isinstance(value, Subscription):
            return value
        if not isinstance(value, str) or not value:
            raise ValueError("subscription must be a non empty string")
        return Subscription.parse(value)

    @field_validator("token_provider")
    @classmethod
    def check_token_provider(cls, value: Any) -> Any:
        if not _implements(value, ("token",)):
            raise ValueError("token_provider must implement TokenProvider")
        return value

    @field_validator("client")
    @classmethod
    def check_client(cls, value: Any) -> Any:
        if not _implements(value, _CLIENT_METHODS):
            raise ValueError("client must implement WireClient")
        return value

    @classmethod
    def from_kwargs(cls, **options: Any) -> "ProducerOptions":
        """
        Validate keyword options.

        None values fall back to the option's default, so callers can pass
        optional settings straight through.

        Raises:
            ConfigurationError: describing the first invalid option
        """
        given = {key: value for key, value in options.items() if value is not None}
        try:
            return cls(**given)
        except ValidationError as exc:
            raise ConfigurationError(_describe(exc, options)) from exc

    def pull_request(self) -> PullRequest:
        return PullRequest(
            max_messages=self.max_number_of_messages,
            return_immediately=self.return_immediately,
        )

    def consumer_config(self) -> ConsumerConfig:
        return ConsumerConfig(
            subscription=self.subscription,
            token=TokenOptions(provider=self.token_provider, scope=self.scope),
        )


def _implements(value: Any, methods: tuple[str, ...]) -> bool:
    return all(callable(getattr(value, name, None)) for name in methods)


def _describe(exc: ValidationError, options: dict[str, Any]) -> str:
    error = exc.errors()[0]
    option = str(error["loc"][0]) if error["loc"] else "options"
    if error["type"] == "extra_forbidden":
        return f"unknown option {option!r}"
    value = options.get(option)
    expected = _EXPECTATIONS.get(option, "valid")
    if option == "subscription" and (not isinstance(value, str) or not value):
        expected = "a non empty string"
    return f"expected {option!r} to be {expected}, got: {value!r}"
