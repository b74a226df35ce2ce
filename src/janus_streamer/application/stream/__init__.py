"""
스트림 디렉터리 모듈

시청 가능한 카메라 목록을 관리합니다.
"""

from janus_streamer.application.stream.directory import (
    StreamDirectory,
    StreamEntry,
    make_directory_updater,
)

__all__ = ["StreamDirectory", "StreamEntry", "make_directory_updater"]
