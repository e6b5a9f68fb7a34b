from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class StandardResultsSetPagination(PageNumberPagination):
    """Page-number pagination for the admin dashboard tables.

    ``?page_size=`` is honoured up to ``max_page_size``; the response also
    carries the page position so tables can render their pager directly.
    """

    page_size_query_param = "page_size"
    max_page_size = 200

    def get_paginated_response(self, data):
        return Response(
            {
                "count": self.page.paginator.count,
                "page": self.page.number,
                "total_pages": self.page.paginator.num_pages,
                "next": self.get_next_link(),
                "previous": self.get_previous_link(),
                "results": data,
            }
        )

    def get_paginated_response_schema(self, schema):
        response_schema = super().get_paginated_response_schema(schema)
        response_schema["properties"]["page"] = {"type": "integer", "example": 1}
        response_schema["properties"]["total_pages"] = {"type": "integer", "example": 3}
        return response_schema
