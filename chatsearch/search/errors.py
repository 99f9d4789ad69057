from __future__ import annotations


class SearchError(Exception):
    pass


class SearchUnavailableError(SearchError):
    def __init__(self, message: str = "搜索服务暂时不可用，请稍后重试") -> None:
        super().__init__(message)
