"""시청 페이지 렌더링"""

from janus_streamer.interface.viewer.renderer import ViewerRenderer

__all__ = ["ViewerRenderer"]
