from typing import TypedDict, Optional

from visual_story.schemas.schema import GeneratedStory, StoryResult


class StoryState(TypedDict, total=False):
    # Input
    topic: str

    # Text step
    draft: Optional[GeneratedStory]

    # Image step (depends on draft.image_prompt)
    image_url: Optional[str]

    # Output
    result: Optional[StoryResult]

    # Errors
    error: Optional[str]
