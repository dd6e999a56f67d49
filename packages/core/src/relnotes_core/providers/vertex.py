from __future__ import annotations

from relnotes_core.providers.anthropic import AnthropicGenerator


class VertexGenerator(AnthropicGenerator):
    """Claude served from Google Cloud Vertex AI.

    Authenticates with Application Default Credentials (workload identity in
    CI), so no API key is involved; only the GCP project and region are
    configured. The request/response shape is the Messages API, so
    _call_api is inherited unchanged.
    """

    MODEL = "claude-sonnet-4@20250514"
    TEMPERATURE = 0.7

    def __init__(self, project_id: str, region: str, model: str | None = None):
        try:
            from anthropic import AnthropicVertex
        except ImportError:
            raise ImportError(
                "The 'anthropic[vertex]' extra is required for this backend. "
                "Install it with: pip install 'anthropic[vertex]'"
            )
        self.model = model or self.MODEL
        self.client = AnthropicVertex(project_id=project_id, region=region)
