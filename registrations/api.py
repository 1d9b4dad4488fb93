"""REST API views for festival registrations."""

from __future__ import annotations

from rest_framework import mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from . import services, settings_store
from .actors import Actor, actor_for_user
from .exceptions import (
    AdmissionBlocked,
    AuthorizationError,
    InvalidTransition,
    RegistrationError,
    RegistrationNotFound,
)
from .serializers import (
    EventResultSerializer,
    FestivalSettingsSerializer,
    RegistrationSerializer,
    ResultEntrySerializer,
    SubmitRegistrationsSerializer,
    TransitionSerializer,
)


ERROR_STATUS = {
    AuthorizationError: status.HTTP_403_FORBIDDEN,
    RegistrationNotFound: status.HTTP_404_NOT_FOUND,
    InvalidTransition: status.HTTP_409_CONFLICT,
    AdmissionBlocked: status.HTTP_409_CONFLICT,
}


class ActorMixin:
    """Resolve the acting festival role and render domain errors with reason codes."""

    permission_classes = [permissions.IsAuthenticated]

    def get_actor(self) -> Actor:
        return actor_for_user(self.request.user)

    def handle_exception(self, exc):
        if isinstance(exc, RegistrationError):
            payload = {"code": exc.code, "detail": exc.detail}
            if isinstance(exc, AdmissionBlocked):
                payload["must_override"] = exc.must_override
            return Response(payload, status=ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST))
        return super().handle_exception(exc)


class RegistrationViewSet(
    ActorMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = RegistrationSerializer

    def get_queryset(self):
        return services.visible_registrations(self.get_actor())

    @action(detail=False, methods=["post"])
    def submit(self, request):
        serializer = SubmitRegistrationsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        outcomes = services.submit_batch(
            serializer.to_candidates(),
            self.get_actor(),
            override=serializer.validated_data["override"],
        )
        return Response({"results": [outcome.as_dict() for outcome in outcomes]})

    @action(detail=True, methods=["post"])
    def transition(self, request, pk=None):
        serializer = TransitionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        registration = services.transition_status(
            pk,
            serializer.validated_data["status"],
            self.get_actor(),
            override=serializer.validated_data["override"],
        )
        return Response(RegistrationSerializer(registration).data)

    def destroy(self, request, pk=None):
        services.withdraw_registration(pk, self.get_actor())
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["post"])
    def result(self, request, pk=None):
        serializer = ResultEntrySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = services.enter_result(
            pk,
            serializer.validated_data["participation"],
            serializer.validated_data["position"],
            self.get_actor(),
        )
        return Response(EventResultSerializer(result).data)


class StudentUsageView(ActorMixin, APIView):
    def get(self, request, student_id: int):
        return Response(services.quota_usage(student_id, self.get_actor()))


class FestivalSettingsView(ActorMixin, APIView):
    def get(self, request):
        self.get_actor()
        return Response(settings_store.snapshot())

    def patch(self, request):
        actor = self.get_actor()
        serializer = FestivalSettingsSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        services.change_settings(actor, dict(serializer.validated_data), user=request.user)
        return Response(settings_store.snapshot())


class ScoreboardView(ActorMixin, APIView):
    def get(self, request):
        actor = self.get_actor()
        if not actor.is_staff and not settings_store.is_enabled(settings_store.SCOREBOARD_VISIBLE):
            raise AuthorizationError("The scoreboard has not been published yet.", code="scoreboard_hidden")
        return Response(services.scoreboard())
