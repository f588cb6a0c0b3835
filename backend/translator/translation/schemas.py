"""Provider response schemas. Anything that does not validate is treated as a transient provider failure."""
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from translator.translation.models import ProviderStatus


class CreateTaskResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    task_id: str = Field(alias="taskId", min_length=1)
    message: Optional[str] = None


class StatusResponse(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    status: ProviderStatus
    progress: Optional[float] = None
    # Usage and URL fields are loosely typed; the resolver coerces them
    translated_file_url: Any = Field(default=None, alias="translatedFileUrl")
    translated_bilingual_file_url: Any = Field(default=None, alias="translatedBilingualFileUrl")
    file_url: Any = Field(default=None, alias="fileUrl")
    bilingual_file_url: Any = Field(default=None, alias="bilingualFileUrl")
    used_credits: Any = Field(default=None, alias="usedCredits")
    token_count: Any = Field(default=None, alias="tokenCount")
    message: Any = None


class CreditBalanceResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    credits: int
    message: Optional[str] = None
