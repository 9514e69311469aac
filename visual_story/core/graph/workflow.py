from langgraph.graph import StateGraph, END

from visual_story.core.graph.state import StoryState
from visual_story.core.mindmap import compile_mind_map
from visual_story.agents.narrative.writer import generate_story
from visual_story.agents.narrative.painter import generate_image
from visual_story.schemas.schema import StoryResult

# --- NODES ---

def writer_node(state: StoryState) -> StoryState:
    """
    Generates dialogue, mind map, takeaways and the image prompt.
    """
    try:
        draft = generate_story(state["topic"])
        return {"draft": draft, "error": None}
    except Exception as e:
        return {"error": str(e)}

def painter_node(state: StoryState) -> StoryState:
    """
    Illustrates the story from the writer's image prompt.
    """
    try:
        image_url = generate_image(state["draft"].image_prompt)
        return {"image_url": image_url}
    except Exception as e:
        return {"error": str(e)}

def assemble_node(state: StoryState) -> StoryState:
    """
    Bundles the draft and the illustration into the story result.
    """
    draft = state["draft"]
    result = StoryResult(
        story=draft.story,
        mind_map=compile_mind_map(draft.mind_map),
        mind_map_data=draft.mind_map,
        image_url=state["image_url"],
        key_takeaways=draft.key_takeaways,
    )
    return {"result": result}

# --- EDGES ---

def check_writer(state: StoryState):
    if state.get("error"):
        return END
    return "painter"

def check_painter(state: StoryState):
    if state.get("error"):
        return END
    return "assemble"

# --- GRAPH ---

workflow = StateGraph(StoryState)

workflow.add_node("writer", writer_node)
workflow.add_node("painter", painter_node)
workflow.add_node("assemble", assemble_node)

workflow.set_entry_point("writer")

workflow.add_conditional_edges(
    "writer",
    check_writer,
    {
        "painter": "painter",
        END: END
    }
)

workflow.add_conditional_edges(
    "painter",
    check_painter,
    {
        "assemble": "assemble",
        END: END
    }
)

workflow.add_edge("assemble", END)

story_graph = workflow.compile()


async def run_story_pipeline(topic: str) -> StoryResult:
    """
    Runs text generation then image generation as one unit.

    Raises:
        RuntimeError: With the failing step's message.
    """
    final_state = await story_graph.ainvoke({"topic": topic})
    if final_state.get("error"):
        raise RuntimeError(final_state["error"])
    return final_state["result"]
