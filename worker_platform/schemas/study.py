from pydantic import ConfigDict

from worker_platform.schemas.camel_model import CamelCaseModel


class StudyInfo(CamelCaseModel):
    model_config = ConfigDict(frozen=True)

    study_id: str
    name: str | None = None
    short_name: str | None = None
    support_email: str | None = None
