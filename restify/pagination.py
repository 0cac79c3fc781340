import math
from .config import get_config


class Pagination:
    """
    Page arithmetic of the PAGINATE endpoint

    :param records: total number of records matching the query
    :param page: requested page, 1-based
    :param size: requested page size, clamped to [MIN_PAGE_SIZE, MAX_PAGE_SIZE]
    """

    def __init__(self, records: int, page=1, size=0) -> None:
        self.records = max(int(records), 0)
        self.limit = self.clamp_size(size)
        self.pages = max(1, math.ceil(self.records / self.limit))
        self.page = max(int(page or 1), 1)

    @staticmethod
    def clamp_size(size) -> int:
        min_size = get_config("MIN_PAGE_SIZE")
        max_size = get_config("MAX_PAGE_SIZE")
        size = int(size or 0)
        if size <= 0:
            return min_size
        return min(max(size, min_size), max_size)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @property
    def last(self) -> int:
        return min(self.offset + self.limit, self.records)

    @property
    def page_range(self):
        """
        :return: the page numbers shown around the current page
        """
        return [page for page in range(self.page - 2, min(self.page + 5, self.pages + 1)) if page > 0]

    @classmethod
    def from_request(cls, records, request) -> "Pagination":
        return cls(records, page=request.args.get("page", 1, type=int), size=request.args.get("size", 0, type=int))
