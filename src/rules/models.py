from pydantic import BaseModel, Field, model_validator


class ProjectRules(BaseModel):
    slug: str = "help-your-neighbor"
    rules_version: str = "1"


class RangeRule(BaseModel):
    min: int
    max: int

    @model_validator(mode="after")
    def _check_bounds(self) -> "RangeRule":
        if self.min < 0 or self.max < self.min:
            raise ValueError(f"invalid range: min={self.min} max={self.max}")
        return self

    def contains(self, length: int) -> bool:
        return self.min <= length <= self.max


class LimitsRules(BaseModel):
    max_open_requests: int = Field(default=5, ge=0)
    max_groups_created: int = Field(default=3, ge=0)
    max_groups_joined: int = Field(default=5, ge=0)
    max_group_members: int = Field(default=20, ge=1)
    max_open_invites: int = Field(default=10, ge=0)


class InviteRules(BaseModel):
    validity_days: int = Field(default=7, ge=1)
    token_bytes: int = Field(default=32, ge=16)
    max_open_per_group_email: int = Field(default=1, ge=1)


class RequestRules(BaseModel):
    item_description: RangeRule = RangeRule(min=3, max=500)
    store_preference: RangeRule = RangeRule(min=1, max=100)
    pickup_notes: RangeRule = RangeRule(min=1, max=500)


class GroupRules(BaseModel):
    name: RangeRule = RangeRule(min=1, max=100)


class SessionRules(BaseModel):
    ttl_days: int = Field(default=30, ge=1)


class EmailRules(BaseModel):
    app_name: str = "Help Your Neighbor"
    base_url: str = "http://localhost:5173"
    invite_path: str = "/invite"


class Rules(BaseModel):
    project: ProjectRules = ProjectRules()
    limits: LimitsRules = LimitsRules()
    invites: InviteRules = InviteRules()
    requests: RequestRules = RequestRules()
    groups: GroupRules = GroupRules()
    sessions: SessionRules = SessionRules()
    email: EmailRules = EmailRules()
