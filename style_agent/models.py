from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, Dict, List, Literal, Optional

JobState = Literal["pending", "processing", "completed", "failed"]

class StyleAnalysis(BaseModel):
    dominant_style: str
    aesthetic: str
    color_palette: List[str] = Field(default_factory=list)

class ShoppingLinks(BaseModel):
    amazon: Optional[str] = None
    asos: Optional[str] = None
    nordstrom: Optional[str] = None

class RecommendationItem(BaseModel):
    name: str
    price: str
    description: str
    style_match: str
    links: ShoppingLinks = Field(default_factory=ShoppingLinks)

    @field_validator("price", mode="before")
    @classmethod
    def _price_to_str(cls, v):
        # Older prompts asked for a bare number
        if isinstance(v, (int, float)):
            return f"${v:.2f}"
        return v

class Recommendation(BaseModel):
    type: str
    items: List[RecommendationItem]

class AnalysisResult(BaseModel):
    style_analysis: StyleAnalysis
    general_style_tips: List[str] = Field(default_factory=list)
    recommendations: List[Recommendation]

class AnalysisOptions(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    budget: str = "budget"
    gender: str = "female"
    size: str = "m"
    shoe_size: str = Field("us8", alias="shoeSize")

class AnalyzeRequest(AnalysisOptions):
    image: str

    def options(self) -> AnalysisOptions:
        return AnalysisOptions(budget=self.budget, gender=self.gender, size=self.size, shoe_size=self.shoe_size)

class Job(BaseModel):
    job_id: str
    status: JobState = "pending"
    start_time: float
    end_time: Optional[float] = None
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
