"""HTTP surface — method-dispatched comment router and FastAPI server."""

from taskcomments.api.router import APIRequest, APIResponse, CommentRouter  # noqa: F401

__all__ = ["APIRequest", "APIResponse", "CommentRouter"]
