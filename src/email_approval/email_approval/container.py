from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from .approval.issuer import ApprovalRequestIssuer
from .approval.mysql_token_repository import MySQLApprovalTokenRepository
from .approval.processor import ApprovalActionProcessor
from .approval.registry import ApprovalTemplateRegistry, build_default_registry
from .approval.templates import TemplateResolver, create_email_environment
from .approval.tokens import TokenCodec
from .core.constants import (
    DEFAULT_BASE_URL,
    DEFAULT_COMPANY_NAME,
    DEFAULT_FRONTEND_URL,
    DEFAULT_SEND_TIMEOUT_SECONDS,
    DEFAULT_TOKEN_SALT,
    DEFAULT_TOKEN_TTL_SECONDS,
)
from .database.connection import DBConfig, DatabaseConnection
from .emails.mysql_sent_email_repository import MySQLSentEmailRepository
from .emails.service import EmailService, SentEmailService
from .emails.transport import EmailTransport, SMTPSettings, SMTPTransport
from .tasks.mysql_task_repository import MySQLTaskRepository
from .tasks.service import TaskDecisionService
from .users.mysql_user_repository import MySQLUserRepository

EMAIL_TEMPLATES_DIR = Path(__file__).resolve().parents[3] / "templates" / "emails"


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    users_repo: Any
    tasks_repo: Any
    tokens_repo: Any
    sent_emails_repo: Any

    token_codec: TokenCodec
    template_registry: ApprovalTemplateRegistry
    template_resolver: TemplateResolver

    task_service: TaskDecisionService
    sent_email_service: SentEmailService
    email_service: EmailService
    approval_issuer: ApprovalRequestIssuer
    approval_processor: ApprovalActionProcessor


def build_services(
    *,
    users_repo,
    tasks_repo,
    tokens_repo,
    sent_emails_repo,
    transport: EmailTransport,
    secret_key: str,
    settings: Any = None,
    conn: Optional[DatabaseConnection] = None,
    templates_dir: Path = EMAIL_TEMPLATES_DIR,
) -> Container:
    """Wire services on top of already-built repositories and transport."""

    def opt(name: str, default):
        return getattr(settings, name, default) if settings is not None else default

    base_url = opt("BASE_URL", DEFAULT_BASE_URL)
    frontend_url = opt("FRONTEND_URL", DEFAULT_FRONTEND_URL)

    codec = TokenCodec(
        secret_key,
        salt=opt("APPROVAL_TOKEN_SALT", DEFAULT_TOKEN_SALT),
        ttl_seconds=int(opt("APPROVAL_TOKEN_TTL_SECONDS", DEFAULT_TOKEN_TTL_SECONDS)),
    )
    registry = build_default_registry()
    resolver = TemplateResolver(registry, codec, create_email_environment(templates_dir))

    task_service = TaskDecisionService(tasks_repo)
    sent_email_service = SentEmailService(sent_emails_repo)
    email_service = EmailService(
        transport,
        sent_email_service,
        company_id=int(opt("COMPANY_ID", 1)),
        timeout=float(opt("EMAIL_SEND_TIMEOUT_SECONDS", DEFAULT_SEND_TIMEOUT_SECONDS)),
    )
    issuer = ApprovalRequestIssuer(
        users=users_repo,
        tasks=task_service,
        resolver=resolver,
        tokens=tokens_repo,
        emails=email_service,
        base_url=base_url,
        company_name=opt("COMPANY_NAME", DEFAULT_COMPANY_NAME),
    )
    processor = ApprovalActionProcessor(
        codec=codec,
        tokens=tokens_repo,
        resolver=resolver,
        tasks=task_service,
        users=users_repo,
        base_url=base_url,
        frontend_url=frontend_url,
    )

    return Container(
        conn=conn,
        users_repo=users_repo,
        tasks_repo=tasks_repo,
        tokens_repo=tokens_repo,
        sent_emails_repo=sent_emails_repo,
        token_codec=codec,
        template_registry=registry,
        template_resolver=resolver,
        task_service=task_service,
        sent_email_service=sent_email_service,
        email_service=email_service,
        approval_issuer=issuer,
        approval_processor=processor,
    )


def build_container(*, db_config: dict, settings: Any) -> Container:
    config = DBConfig(
        host=str(db_config["host"]),
        port=int(db_config.get("port", 3306)),
        user=str(db_config["user"]),
        password=str(db_config["password"]),
        database=str(db_config["database"]),
    )
    conn = DatabaseConnection.get_instance(config)

    transport = SMTPTransport(
        SMTPSettings(
            host=getattr(settings, "SMTP_HOST", ""),
            port=int(getattr(settings, "SMTP_PORT", 587)),
            username=getattr(settings, "SMTP_USERNAME", "") or None,
            password=getattr(settings, "SMTP_PASSWORD", "") or None,
            use_ssl=bool(getattr(settings, "SMTP_SSL", False)),
            use_starttls=bool(getattr(settings, "SMTP_STARTTLS", True)),
            from_email=getattr(settings, "SMTP_FROM_EMAIL", "no-reply@localhost"),
            from_name=getattr(settings, "SMTP_FROM_NAME", None) or None,
        )
    )

    return build_services(
        users_repo=MySQLUserRepository(conn),
        tasks_repo=MySQLTaskRepository(conn),
        tokens_repo=MySQLApprovalTokenRepository(conn),
        sent_emails_repo=MySQLSentEmailRepository(conn),
        transport=transport,
        secret_key=getattr(settings, "SECRET_KEY"),
        settings=settings,
        conn=conn,
    )
