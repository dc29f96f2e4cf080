from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

# --- Request Models ---

class RenderOptions(BaseModel):
    """
    Per-request switches for a render.

    Values of the wrong JSON type never fail validation: a non-boolean
    switch keeps its default and a non-string `fastSelector` is ignored.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    use_cache: bool = Field(default=True, alias="useCache")
    block_media: bool = Field(default=False, alias="blockMedia")
    fast_selector: Optional[str] = Field(default=None, alias="fastSelector")

    @field_validator("use_cache", mode="before")
    @classmethod
    def _use_cache_flag(cls, value: Any) -> bool:
        return value if isinstance(value, bool) else True

    @field_validator("block_media", mode="before")
    @classmethod
    def _block_media_flag(cls, value: Any) -> bool:
        return value if isinstance(value, bool) else False

    @field_validator("fast_selector", mode="before")
    @classmethod
    def _selector_text(cls, value: Any) -> Optional[str]:
        if isinstance(value, str) and value.strip():
            return value
        return None


class RenderRequest(BaseModel):
    """
    Request body for both render endpoints.

    Every field accepts any JSON value so that a malformed request is answered
    in-body by the render manager instead of by a validation error: a missing,
    blank or non-string `url` yields `{"success": false, "error": "Missing url"}`,
    an unknown or non-string `mode` falls back to the endpoint default, and a
    `waitTime` that is not a finite number uses the mode default. `options`
    may be omitted, null or a non-object; all mean "defaults".
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    url: Any = None
    wait_time: Any = Field(default=None, alias="waitTime")
    mode: Any = None
    options: RenderOptions = Field(default_factory=RenderOptions)

    @field_validator("options", mode="before")
    @classmethod
    def _options_object(cls, value: Any) -> Any:
        if isinstance(value, (dict, RenderOptions)):
            return value
        return {}


# --- Response Models ---

class RenderResponse(BaseModel):
    """
    Response body for both render endpoints. Always returned with HTTP 200;
    `success` tells the caller whether `html` is present or `error` explains why not.
    """
    success: bool
    html: Optional[str] = None
    metadata: Optional[Dict[str, str]] = None
    cached: Optional[bool] = None
    error: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    browser_connected: bool
    draining: bool
    cache_entries: int
