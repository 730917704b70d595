from django.urls import path
from . import views

app_name = "conversations"

urlpatterns = [
    path("", views.index, name="index"),
    path("send/", views.send_message, name="send"),
    path("conversations/new/", views.new_conversation, name="new"),
    path("conversations/edit/cancel/", views.cancel_edit, name="cancel_edit"),
    path("conversations/<str:cid>/select/", views.select_conversation, name="select"),
    path("conversations/<str:cid>/edit/", views.edit_title, name="edit"),
    path("conversations/<str:cid>/rename/", views.rename_conversation, name="rename"),
    path("conversations/<str:cid>/delete/", views.delete_conversation, name="delete"),
]
