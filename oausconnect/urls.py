from django.contrib import admin
from django.urls import include, path

from social import views

urlpatterns = [
    path("admin/", admin.site.urls),
    path("health", views.health, name="health"),
    path("", include("social.urls")),
]

handler404 = "social.views.route_not_found"
handler500 = "social.views.server_error"
