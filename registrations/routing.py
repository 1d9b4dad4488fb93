"""Channel routing for registration websockets."""

from django.urls import re_path

from . import consumers

websocket_urlpatterns = [
    re_path(r"^ws/registrations/$", consumers.RegistrationFeedConsumer.as_asgi()),
]
