from django.contrib import admin
from django.urls import include, path

api_v1 = [
    include("modules.customers.urls"),
    include("modules.orders.urls"),
    include("modules.payments.urls"),
]

urlpatterns = [
    path("", include("modules.core.urls")),
    path("admin/", admin.site.urls),
    *(path("api/v1/", module) for module in api_v1),
]
