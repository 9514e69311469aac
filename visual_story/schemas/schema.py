from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import List, Optional


class MindMapNode(BaseModel):
    id: str
    text: str

    model_config = ConfigDict(frozen=True)


class MindMapEdge(BaseModel):
    from_: str = Field(..., alias="from")
    to: str

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class MindMapData(BaseModel):
    nodes: List[MindMapNode] = Field(default_factory=list)
    connections: List[MindMapEdge] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class StoryResult(BaseModel):
    """Bundled output of one story generation or translation."""
    story: str
    mind_map: str = Field(..., alias="mindMap")
    mind_map_data: MindMapData = Field(..., alias="mindMapData")
    image_url: str = Field(..., alias="imageUrl", min_length=1)
    key_takeaways: List[str] = Field(default_factory=list, alias="keyTakeaways")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class GeneratedStory(BaseModel):
    """JSON contract of the story generation request."""
    image_prompt: str = Field(..., alias="imagePrompt", min_length=1)
    story: str = Field(..., min_length=1)
    mind_map: MindMapData = Field(..., alias="mindMap")
    key_takeaways: List[str] = Field(default_factory=list, alias="keyTakeaways")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("mind_map")
    @classmethod
    def mind_map_has_nodes(cls, value: MindMapData) -> MindMapData:
        if not value.nodes:
            raise ValueError("mind map has no nodes")
        return value


class TranslatedContent(BaseModel):
    """JSON contract of the translation request (input and output share it)."""
    story: str
    key_takeaways: List[str] = Field(..., alias="keyTakeaways")
    mind_map_nodes: List[MindMapNode] = Field(..., alias="mindMapNodes")

    model_config = ConfigDict(populate_by_name=True)


class QuizItem(BaseModel):
    question: str = Field(..., min_length=1)
    options: List[str] = Field(..., min_length=4, max_length=4)
    correct_answer_index: int = Field(..., alias="correctAnswerIndex", ge=0, le=3)

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @field_validator("correct_answer_index", mode="before")
    @classmethod
    def answer_index_is_number(cls, value):
        # Whole floats such as 1.0 pass; booleans and strings do not
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("correctAnswerIndex must be a number")
        return value


class DialogueTurn(BaseModel):
    speaker: Optional[str] = None
    text: str
