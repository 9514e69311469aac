"""
Mind map compiler: turns the structured node/edge graph returned by the
writer into a Mermaid flowchart description for the browser to render.
"""

from typing import Optional

from visual_story.schemas.schema import MindMapData

DIAGRAM_HEADER = "graph TD"


def escape_label(text: str) -> str:
    """Quote a node label so brackets, pipes and quotes cannot break the syntax."""
    text = text.replace("\r\n", " ").replace("\n", " ").replace("\r", " ")
    return '"' + text.replace('"', "#quot;") + '"'


def compile_mind_map(data: Optional[MindMapData]) -> str:
    """
    Compile a mind map graph into Mermaid flowchart text.

    Returns an empty string when there is nothing to render. Dangling or
    duplicate edges are passed through unchanged.
    """
    if data is None or not isinstance(data.nodes, list) or not data.nodes:
        return ""
    if not isinstance(data.connections, list):
        return ""

    node_lines = [f"{node.id}[{escape_label(node.text)}]" for node in data.nodes]
    edge_lines = [f"{edge.from_} --> {edge.to}" for edge in data.connections]

    return "\n".join([DIAGRAM_HEADER, *node_lines, *edge_lines])
