from pydantic import BaseModel, Field

from paddock.schemas.keys import Key

# Field declaration order below is the column order on disk.


class Participant(BaseModel):
    handle: str
    time_zone: str
    total_points: int = Field(0, ge=0)
    notifications: str = ""

    @property
    def key(self) -> Key:
        return Key(self.handle)


class Prediction(BaseModel):
    event: str
    handle: str
    first: str
    second: str
    third: str
    fastest_lap: str
    awarded_points: int = Field(0, ge=0)

    @property
    def event_key(self) -> Key:
        return Key(self.event)

    @property
    def handle_key(self) -> Key:
        return Key(self.handle)

    @property
    def podium(self) -> tuple[str, str, str]:
        return (self.first, self.second, self.third)


class OfficialResult(BaseModel):
    event: str
    first: str
    second: str
    third: str
    fourth: str              # fastest-lap driver
    processed: str = ""      # equals event once settled

    @property
    def event_key(self) -> Key:
        return Key(self.event)

    @property
    def podium(self) -> tuple[str, str, str]:
        return (self.first, self.second, self.third)

    @property
    def is_processed(self) -> bool:
        return self.event_key == self.processed

    def mark_processed(self) -> None:
        self.processed = self.event


class Driver(BaseModel):
    number: int = Field(0, ge=0)
    code: str
    odds: int = Field(0, ge=0)

    @property
    def key(self) -> Key:
        return Key(self.code)
