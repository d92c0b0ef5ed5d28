from datetime import datetime
from pydantic import BaseModel, ConfigDict

class InternshipFields(BaseModel):
    company: str
    batch: str
    description: str
    link: str

class Internship(InternshipFields):
    id: str
    deadline: datetime
    posted_by: str
    created_at: datetime

    model_config = ConfigDict(extra="ignore")
