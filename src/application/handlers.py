"""
Command and query handlers - Use case orchestration.

Each handler resolves what it needs from the unit of work, calls one
manager operation, stores the aggregate and commits. Domain errors
propagate to the caller unchanged.
"""

from dataclasses import dataclass
from uuid import UUID

from src.application.messages import (
    ChangeEmailCommand,
    ChangePasswordCommand,
    ChangeStatusCommand,
    FindActiveChallengeQuery,
    FindUserByIdQuery,
    GenerateCodesCommand,
    InvalidateCodesCommand,
    LogoutCommand,
    RedeemCodeCommand,
    ResetPasswordCommand,
    SignInCommand,
    SignUpCommand,
)
from src.application.unit_of_work import AbstractUnitOfWork
from src.domain.exceptions import CodeNotFound, InvalidCredentials, NoActiveChallenge
from src.domain.security import DEFAULT_CODES_PER_CHALLENGE, SecurityChallenge, SecurityManager
from src.domain.user import User, UserManager, UserStatusManager
from src.domain.values import (
    DEFAULT_BCRYPT_COST,
    Code,
    Credentials,
    Email,
    HashedPassword,
    Purpose,
    SecurityLevel,
    Username,
)


@dataclass
class GenerateCodesHandler:
    uow: AbstractUnitOfWork
    manager: SecurityManager
    quantity: int = DEFAULT_CODES_PER_CHALLENGE
    allow_duplicates: bool = True

    def __call__(self, command: GenerateCodesCommand) -> UUID:
        purpose = Purpose.from_string(command.purpose)
        level = SecurityLevel.from_string(command.security_level)

        self.uow.users.get(command.user_id)
        self.uow.lock_user(command.user_id)
        challenge = self.manager.generate(
            command.user_id,
            purpose,
            command.code_length,
            level,
            counter=self.uow.challenges,
            quantity=self.quantity,
            allow_duplicates=self.allow_duplicates,
        )
        self.uow.challenges.store(challenge)
        self.uow.commit()
        return challenge.id


@dataclass
class RedeemCodeHandler:
    uow: AbstractUnitOfWork
    manager: SecurityManager

    def __call__(self, command: RedeemCodeCommand) -> None:
        code = Code.from_string(command.code)
        purpose = Purpose.from_string(command.purpose)

        self.uow.lock_user(command.user_id)
        security_code = self.uow.challenges.find_code_by_value(command.user_id, code.value)
        if security_code is None:
            raise CodeNotFound()

        self.manager.redeem(security_code, purpose)
        self.uow.challenges.store(security_code.challenge)
        self.uow.commit()


@dataclass
class InvalidateCodesHandler:
    uow: AbstractUnitOfWork
    manager: SecurityManager

    def __call__(self, command: InvalidateCodesCommand) -> None:
        purpose = Purpose.from_string(command.purpose)

        self.uow.lock_user(command.user_id)
        challenge = self.uow.challenges.find_non_invalidated_challenge(command.user_id, purpose)
        if challenge is None:
            raise NoActiveChallenge()

        self.manager.invalidate_all(challenge)
        self.uow.challenges.store(challenge)
        self.uow.commit()


@dataclass
class SignUpHandler:
    uow: AbstractUnitOfWork
    manager: UserManager
    password_cost: int = DEFAULT_BCRYPT_COST

    def __call__(self, command: SignUpCommand) -> UUID:
        username = Username.from_string(command.username)
        credentials = Credentials(
            email=Email.from_string(command.email),
            password=HashedPassword.encode(command.password, self.password_cost),
        )

        user = self.manager.create(command.user_id, username, credentials, self.uow.users)
        self.uow.users.store(user)
        self.uow.commit()
        return user.id


@dataclass
class SignInHandler:
    """Unknown email and wrong password both surface as InvalidCredentials."""

    uow: AbstractUnitOfWork
    manager: UserManager

    def __call__(self, command: SignInCommand) -> UUID:
        email = Email.from_string(command.email)
        user_id = self.uow.users.find_uuid_by_email(email)
        if user_id is None:
            raise InvalidCredentials()

        user = self.uow.users.get(user_id)
        self.manager.sign_in(user, command.password)
        self.uow.users.store(user)
        self.uow.commit()
        return user.id


@dataclass
class LogoutHandler:
    uow: AbstractUnitOfWork
    manager: UserManager

    def __call__(self, command: LogoutCommand) -> None:
        user = self.uow.users.get(command.user_id)
        self.manager.log_out(user)
        self.uow.users.store(user)
        self.uow.commit()


@dataclass
class ChangeEmailHandler:
    uow: AbstractUnitOfWork
    manager: UserManager

    def __call__(self, command: ChangeEmailCommand) -> None:
        email = Email.from_string(command.email)

        user = self.uow.users.get(command.user_id)
        self.manager.change_email(user, email, self.uow.users)
        self.uow.users.store(user)
        self.uow.commit()


@dataclass
class ChangePasswordHandler:
    uow: AbstractUnitOfWork
    manager: UserManager
    password_cost: int = DEFAULT_BCRYPT_COST

    def __call__(self, command: ChangePasswordCommand) -> None:
        password = HashedPassword.encode(command.password, self.password_cost)

        user = self.uow.users.get(command.user_id)
        self.manager.change_password(user, password)
        self.uow.users.store(user)
        self.uow.commit()


@dataclass
class ResetPasswordHandler:
    uow: AbstractUnitOfWork
    user_manager: UserManager
    security_manager: SecurityManager
    password_cost: int = DEFAULT_BCRYPT_COST

    def __call__(self, command: ResetPasswordCommand) -> None:
        code = Code.from_string(command.code)
        password = HashedPassword.encode(command.password, self.password_cost)

        user = self.uow.users.get(command.user_id)
        self.uow.lock_user(command.user_id)
        security_code = self.uow.challenges.find_code_by_value(user.id, code.value)
        if security_code is None:
            raise CodeNotFound()

        self.security_manager.redeem(security_code, Purpose.PASSWORD_RESET)
        self.user_manager.change_password(user, password)
        self.uow.challenges.store(security_code.challenge)
        self.uow.users.store(user)
        self.uow.commit()


@dataclass
class ChangeStatusHandler:
    uow: AbstractUnitOfWork
    manager: UserStatusManager

    def __call__(self, command: ChangeStatusCommand) -> None:
        user = self.uow.users.get(command.user_id)
        self.manager.change_status(user, command.operation)
        self.uow.users.store(user)
        self.uow.commit()


@dataclass
class FindUserByIdHandler:
    uow: AbstractUnitOfWork

    def __call__(self, query: FindUserByIdQuery) -> User:
        return self.uow.users.get(query.user_id)


@dataclass
class FindActiveChallengeHandler:
    uow: AbstractUnitOfWork

    def __call__(self, query: FindActiveChallengeQuery) -> SecurityChallenge:
        purpose = Purpose.from_string(query.purpose)
        challenge = self.uow.challenges.find_non_invalidated_challenge(query.user_id, purpose)
        if challenge is None:
            raise NoActiveChallenge()
        return challenge
