from src.render.filter_graph import ExportCommand, ExportFilterGraphBuilder

__all__ = [
    "ExportCommand",
    "ExportFilterGraphBuilder",
]
