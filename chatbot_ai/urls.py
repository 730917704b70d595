from django.urls import path, include

urlpatterns = [
    path("api/chat", include("chat.urls")),
    path("", include("conversations.urls")),
    path("", include("django_prometheus.urls")),
]
