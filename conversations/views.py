# conversations/views.py
import logging

from django.shortcuts import redirect, render
from django.views.decorators.http import require_GET, require_POST

from .client import ChatApiClient
from .page import ChatPage
from .store import get_store

log = logging.getLogger(__name__)

SESSION_KEY = "chat_page"


def _page(request) -> ChatPage:
    page = ChatPage.from_state(get_store(), ChatApiClient(), request.session.get(SESSION_KEY))
    page.mount()
    return page


def _back(request, page: ChatPage):
    request.session[SESSION_KEY] = page.state()
    return redirect("conversations:index")


@require_GET
def index(request):
    page = _page(request)
    request.session[SESSION_KEY] = page.state()
    return render(request, "conversations/chat.html", {
        "page": page,
        "conversations": page.conversations,
        "chat_messages": page.messages,
        "active": page.active,
    })


@require_POST
def new_conversation(request):
    page = _page(request)
    page.new_conversation()
    return _back(request, page)


@require_POST
def select_conversation(request, cid):
    page = _page(request)
    page.select(cid)
    return _back(request, page)


@require_POST
def edit_title(request, cid):
    page = _page(request)
    page.begin_rename(cid)
    return _back(request, page)


@require_POST
def rename_conversation(request, cid):
    """Commit the inline title edit (form submits on Enter or blur)."""
    page = _page(request)
    if str(page.editing_id) != str(cid) and not page.begin_rename(cid):
        return _back(request, page)
    page.update_draft(request.POST.get("title", ""))
    page.commit_rename()
    return _back(request, page)


@require_POST
def cancel_edit(request):
    page = _page(request)
    page.cancel_rename()
    return _back(request, page)


@require_POST
def delete_conversation(request, cid):
    page = _page(request)
    page.delete(cid)
    return _back(request, page)


@require_POST
def send_message(request):
    page = _page(request)
    page.send(request.POST.get("message", ""))
    return _back(request, page)
