"""
URL configuration for the Mediku backend project.

Routes the Django admin, the API provided by the clinic app, and the
OpenAPI documentation at ``/swagger/`` and ``/redoc/``. Uploaded files
are only reachable through the access-checked document endpoints.
"""
from django.contrib import admin
from django.urls import path, include

from rest_framework import permissions
from drf_yasg.views import get_schema_view
from drf_yasg import openapi

api_info = openapi.Info(
    title="Mediku Hospital API",
    default_version='v1',
    description="Patients, outpatient queue, pharmacy stock, documents and attendance.",
)

schema_view = get_schema_view(
    api_info,
    public=True,
    permission_classes=(permissions.AllowAny,),
)

urlpatterns = [
    path('admin/', admin.site.urls),
    path('', include('clinic.routers')),
    path('swagger/', schema_view.with_ui('swagger', cache_timeout=0), name='schema-swagger-ui'),
    path('redoc/', schema_view.with_ui('redoc', cache_timeout=0), name='schema-redoc'),
]
