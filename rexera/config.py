"""
Configuration centralisée de l'API Rexera.
Utilise pydantic-settings pour charger les variables d'environnement.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configuration globale de l'API."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Server Configuration
    # -------------------------------------------------------------------------
    server_host: str = Field(default="0.0.0.0", description="Host du serveur")
    server_port: int = Field(default=8787, description="Port du serveur")
    server_debug: bool = Field(default=False, description="Mode debug")
    log_level: str = Field(default="INFO", description="Niveau de log")
    log_format: str = Field(
        default="json",
        description="Format des logs: json (production) ou console (développement)"
    )
    environment: str = Field(
        default="development",
        description="Environnement d'exécution (development, staging, production)"
    )

    # -------------------------------------------------------------------------
    # Security Configuration
    # -------------------------------------------------------------------------
    skip_auth: bool = Field(
        default=False,
        description="Désactive la vérification des tokens (développement uniquement)"
    )
    cors_allowed_origins: str = Field(
        default="http://localhost:3000,http://127.0.0.1:3000",
        description="Origins autorisées pour CORS (séparées par des virgules)"
    )
    rate_limit_enabled: bool = Field(default=True, description="Activer le rate limiting")
    rate_limit_window_seconds: int = Field(
        default=900, description="Fenêtre du rate limiting API (secondes)"
    )
    rate_limit_max_requests: int = Field(
        default=100, description="Requêtes autorisées par fenêtre et par IP"
    )
    webhook_rate_limit_window_seconds: int = Field(
        default=60, description="Fenêtre du rate limiting des webhooks (secondes)"
    )
    webhook_rate_limit_max_requests: int = Field(
        default=100, description="Requêtes webhook autorisées par fenêtre et par IP"
    )
    n8n_webhook_secret: SecretStr = Field(
        default="",
        description="Secret Bearer attendu sur le webhook n8n (OBLIGATOIRE en production)"
    )
    cron_secret: SecretStr = Field(
        default="",
        description="Secret Bearer attendu sur les endpoints cron"
    )

    # -------------------------------------------------------------------------
    # Supabase Configuration
    # -------------------------------------------------------------------------
    supabase_url: str = Field(default="", description="URL du projet Supabase")
    supabase_anon_key: SecretStr = Field(default="", description="Clé anonyme Supabase")
    supabase_service_role_key: SecretStr = Field(
        default="", description="Clé service role Supabase (vérification des tokens)"
    )
    supabase_timeout: float = Field(default=10.0, description="Timeout Supabase Auth (secondes)")

    # -------------------------------------------------------------------------
    # PostgreSQL Configuration
    # -------------------------------------------------------------------------
    database_url: Optional[SecretStr] = Field(
        default=None,
        description="DSN PostgreSQL complet (prioritaire sur les champs postgres_*)"
    )
    postgres_host: str = Field(default="localhost", description="Host PostgreSQL")
    postgres_port: int = Field(default=5432, description="Port PostgreSQL")
    postgres_user: str = Field(default="postgres", description="Utilisateur PostgreSQL")
    postgres_pass: SecretStr = Field(default="", description="Mot de passe PostgreSQL")
    postgres_db: str = Field(default="postgres", description="Base de données")
    postgres_pool_min_size: int = Field(default=2, description="Taille minimale du pool")
    postgres_pool_max_size: int = Field(default=10, description="Taille maximale du pool")

    # -------------------------------------------------------------------------
    # Redis Configuration
    # -------------------------------------------------------------------------
    redis_host: str = Field(default="localhost", description="Host Redis")
    redis_port: int = Field(default=6379, description="Port Redis")
    redis_password: Optional[SecretStr] = Field(default=None, description="Mot de passe Redis")
    redis_db: int = Field(default=0, description="Base Redis")

    # -------------------------------------------------------------------------
    # n8n Configuration
    # -------------------------------------------------------------------------
    n8n_base_url: str = Field(default="", description="URL de l'instance n8n")
    n8n_api_key: SecretStr = Field(default="", description="Clé API n8n (X-N8N-API-KEY)")
    n8n_timeout: float = Field(default=30.0, description="Timeout des appels n8n (secondes)")
    n8n_webhook_callback_url: str = Field(
        default="",
        description="URL publique du webhook que n8n doit rappeler"
    )
    n8n_payoff_workflow_id: str = Field(default="", description="Workflow n8n PAYOFF_REQUEST")
    n8n_hoa_workflow_id: str = Field(default="", description="Workflow n8n HOA_ACQUISITION")
    n8n_muni_lien_workflow_id: str = Field(
        default="", description="Workflow n8n MUNI_LIEN_SEARCH"
    )

    # -------------------------------------------------------------------------
    # Scheduler / SLA Configuration
    # -------------------------------------------------------------------------
    scheduler_enabled: bool = Field(default=True, description="Activer les jobs planifiés")
    runner_port: int = Field(default=8788, description="Port du runner de jobs")
    sla_monitor_interval_minutes: int = Field(
        default=15, description="Intervalle du moniteur SLA (minutes)"
    )
    sla_at_risk_threshold: float = Field(
        default=0.8,
        ge=0.0,
        le=1.0,
        description="Fraction de la fenêtre SLA écoulée à partir de laquelle une tâche est AT_RISK"
    )
    default_sla_hours: int = Field(default=24, ge=1, description="SLA par défaut (heures)")

    def validate_security(self) -> list[str]:
        """
        Valide la configuration de sécurité.
        Retourne une liste d'erreurs critiques si la config est dangereuse.
        """
        errors = []

        # =============================================================================
        # PRODUCTION: Sécurité STRICTE obligatoire
        # =============================================================================
        if self.is_production:
            if self.skip_auth:
                errors.append(
                    "CRITICAL: SKIP_AUTH must be 'false' in production. "
                    "Every request would run as the development admin user."
                )

            if not self.n8n_webhook_secret.get_secret_value():
                errors.append(
                    "CRITICAL: N8N_WEBHOOK_SECRET is empty in production. "
                    "The n8n webhook would accept unauthenticated calls."
                )

            if not self.cron_secret.get_secret_value():
                errors.append(
                    "CRITICAL: CRON_SECRET is empty in production. "
                    "The SLA monitor endpoint would be publicly callable."
                )

            if not self.supabase_service_role_key.get_secret_value():
                errors.append(
                    "CRITICAL: SUPABASE_SERVICE_ROLE_KEY is empty in production. "
                    "Bearer tokens cannot be verified."
                )

            if not self.cors_allowed_origins:
                errors.append(
                    "CRITICAL: CORS_ALLOWED_ORIGINS must be configured in production. "
                    "Specify exact origins (no wildcards)."
                )

        # =============================================================================
        # TOUS ENVIRONNEMENTS: Validations générales
        # =============================================================================
        if not self.skip_auth and not self.supabase_url:
            errors.append(
                "WARNING: SUPABASE_URL est vide. Seul le token de développement sera accepté."
            )

        webhook_secret = self.n8n_webhook_secret.get_secret_value()
        if webhook_secret and len(webhook_secret) < 32:
            errors.append(
                f"WARNING: N8N_WEBHOOK_SECRET trop court ({len(webhook_secret)} chars). "
                "Utilisez au moins 32 caractères."
            )

        if "*" in self.cors_allowed_origins.split(","):
            errors.append(
                "WARNING: CORS_ALLOWED_ORIGINS contient '*'. Toutes les origines sont acceptées."
            )

        return errors

    # -------------------------------------------------------------------------
    # Computed Properties
    # -------------------------------------------------------------------------
    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def postgres_dsn(self) -> str:
        """Retourne le DSN PostgreSQL."""
        if self.database_url and self.database_url.get_secret_value():
            return self.database_url.get_secret_value()
        password = self.postgres_pass.get_secret_value() if self.postgres_pass else ""
        return (
            f"postgresql://{self.postgres_user}:{password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def redis_url(self) -> str:
        """Retourne l'URL Redis."""
        if self.redis_password:
            password = self.redis_password.get_secret_value()
            return f"redis://:{password}@{self.redis_host}:{self.redis_port}/{self.redis_db}"
        return f"redis://{self.redis_host}:{self.redis_port}/{self.redis_db}"

    @property
    def n8n_enabled(self) -> bool:
        """n8n est actif uniquement si l'URL et la clé API sont définies."""
        return bool(self.n8n_base_url and self.n8n_api_key.get_secret_value())

    @property
    def n8n_workflow_ids(self) -> dict[str, str]:
        """Mapping type de workflow Rexera -> id du workflow n8n."""
        return {
            "PAYOFF_REQUEST": self.n8n_payoff_workflow_id,
            "HOA_ACQUISITION": self.n8n_hoa_workflow_id,
            "MUNI_LIEN_SEARCH": self.n8n_muni_lien_workflow_id,
        }

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_allowed_origins.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    """Retourne l'instance singleton des settings."""
    return Settings()


# Alias pour import simplifié
settings = get_settings()
