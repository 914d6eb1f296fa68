from pydantic import BaseModel, ConfigDict, Field


class Fingerprint(BaseModel):
    user_agent: str
    viewport_width: int = Field(gt=0)
    viewport_height: int = Field(gt=0)

    model_config = ConfigDict(frozen=True)

    @property
    def viewport(self) -> dict[str, int]:
        return {"width": self.viewport_width, "height": self.viewport_height}
