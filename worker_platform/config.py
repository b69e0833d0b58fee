import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    AWS_REGION: str = os.getenv("AWS_REGION", "us-east-1")
    DYNAMO_TABLE_PREFIX: str = os.getenv("DYNAMO_TABLE_PREFIX", "local-exporter-")

    NOTIFICATION_CONFIG_TABLE: str = os.getenv("NOTIFICATION_CONFIG_TABLE", "NotificationConfig")
    NOTIFICATION_LOG_TABLE: str = os.getenv("NOTIFICATION_LOG_TABLE", "NotificationLog")
    STUDY_TABLE: str = os.getenv("STUDY_TABLE", "Study")
    SYNAPSE_MAP_TABLE: str = os.getenv("SYNAPSE_MAP_TABLE", "SynapseTables")
    SYNAPSE_META_TABLE: str = os.getenv("SYNAPSE_META_TABLE", "SynapseMetaTables")
    SYNAPSE_SURVEY_TABLES_TABLE: str = os.getenv("SYNAPSE_SURVEY_TABLES_TABLE", "SynapseSurveyTables")
    UPLOAD_SCHEMA_TABLE: str = os.getenv("UPLOAD_SCHEMA_TABLE", "UploadSchema")
    UPLOAD_SCHEMA_STUDY_INDEX: str = os.getenv("UPLOAD_SCHEMA_STUDY_INDEX", "studyId-index")
    WORKER_LOG_TABLE: str = os.getenv("WORKER_LOG_TABLE", "WorkerLog")

    SYNAPSE_ENDPOINT: str = os.getenv("SYNAPSE_ENDPOINT", "https://repo-prod.prod.sagebase.org")
    SYNAPSE_AUTH_TOKEN: str = os.getenv("SYNAPSE_AUTH_TOKEN", "")
    SYNAPSE_MAX_ATTEMPTS: int = int(os.getenv("SYNAPSE_MAX_ATTEMPTS", "5"))

    NOTIFICATION_CONFIG_CACHE_SECONDS: int = int(os.getenv("NOTIFICATION_CONFIG_CACHE_SECONDS", "300"))

    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    def table_name(self, suffix: str) -> str:
        """Full DynamoDB table name for the current environment."""
        return self.DYNAMO_TABLE_PREFIX + suffix


settings = Settings()
