# cityhub/models/dto.py
# Public request/response models for the /api endpoints.

from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Literal, Optional

# --- Places ---

class Place(BaseModel):
    """Normalized geocoding result; one entry in the suggestion dropdown."""
    model_config = ConfigDict(frozen=True)

    city: str = Field(..., description="City name.")
    region: Optional[str] = Field(None, description="State/province (admin1, else admin2).")
    country: str = Field(..., description="Country name.")
    latitude: float = Field(..., description="Latitude.")
    longitude: float = Field(..., description="Longitude.")
    timezone: str = Field("UTC", description="IANA timezone identifier.")

    @property
    def label(self) -> str:
        """Display label such as "Paris, Île-de-France, France"."""
        return ", ".join(part for part in (self.city, self.region, self.country) if part)

# --- Weather ---

class WeatherUnits(BaseModel):
    temp: Literal["C", "F"]
    wind: Literal["km/h", "mph"]
    precip: Literal["mm"] = "mm"

class CurrentWeather(BaseModel):
    time_iso: str = ""
    temp: Optional[float] = None
    feels_like: Optional[float] = None
    is_day: Optional[bool] = None
    precip: Optional[float] = Field(None, description="Millimetres.")
    wind_speed: Optional[float] = None
    code: Optional[int] = Field(None, description="WMO weather code.")

class HourlyWeather(BaseModel):
    time_iso: str
    temp: Optional[float] = None
    code: Optional[int] = None
    precip_prob_pct: Optional[float] = None

class DailyWeather(BaseModel):
    date: str
    high: Optional[float] = None
    low: Optional[float] = None
    precip_prob_max_pct: Optional[float] = None
    code: Optional[int] = None

class WeatherResponse(BaseModel):
    """Unit-neutral forecast; values are already in the units described by `units`."""
    timezone: str
    units: WeatherUnits
    current: CurrentWeather
    today: Optional[DailyWeather] = None
    hourly: List[HourlyWeather] = Field(default_factory=list, description="Next 24 hours at most.")
    daily: List[DailyWeather] = Field(default_factory=list)

# --- Photos ---

class Photo(BaseModel):
    title: str
    link: str
    author: str
    thumb: str
    full: str
    published_at_iso: str = ""

class PhotosResponse(BaseModel):
    items: List[Photo]
    mode: Literal["key", "anonymous"] = Field(..., description="Whether the Unsplash access key was used.")

# --- News ---

class NewsItem(BaseModel):
    title: str
    link: str
    source: str
    published_at_iso: str = ""
    image_url: str = ""

class NewsResponse(BaseModel):
    items: List[NewsItem]

# --- History ---

class HistoryCreate(BaseModel):
    """Body of POST /api/history. City and country are checked by the route."""
    city: Optional[str] = None
    region: Optional[str] = None
    country: Optional[str] = None

class HistoryItem(BaseModel):
    id: str
    city: str
    region: Optional[str] = None
    country: str
    viewed_at: datetime

class HistoryResponse(BaseModel):
    items: List[HistoryItem]

# --- Error Response Model ---

class ErrorResponse(BaseModel):
    """Standardized error response model."""
    error: str = Field(..., description="A machine-readable error code.")
    detail: str = Field(..., description="A human-readable explanation.")
