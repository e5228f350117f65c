import django_filters

from modules.orders.constants import OrderStatus, Priority
from modules.orders.models import Order
from modules.orders.repositories.django_repository import order_search_q


class OrderFilter(django_filters.FilterSet):
    status = django_filters.MultipleChoiceFilter(choices=OrderStatus.choices)
    priority = django_filters.ChoiceFilter(choices=Priority.choices)
    batch_number = django_filters.CharFilter(lookup_expr="iexact")
    delivery_from = django_filters.DateFilter(
        field_name="delivery_date", lookup_expr="gte"
    )
    delivery_to = django_filters.DateFilter(
        field_name="delivery_date", lookup_expr="lte"
    )
    search = django_filters.CharFilter(method="filter_search")

    class Meta:
        model = Order
        fields = [
            "status",
            "priority",
            "batch_number",
            "delivery_from",
            "delivery_to",
            "search",
        ]

    def filter_search(self, queryset, name, value):
        if not value or not value.strip():
            return queryset
        return queryset.filter(order_search_q(value))
