from django.urls import path

from .consumers import PatientConsumer, PolyclinicQueueConsumer, QueueDisplayConsumer

websocket_urlpatterns = [
    path('ws/queue/display/', QueueDisplayConsumer.as_asgi()),
    path('ws/queue/polyclinic/<uuid:polyclinic_id>/', PolyclinicQueueConsumer.as_asgi()),
    path('ws/patient/<uuid:patient_id>/', PatientConsumer.as_asgi()),
]
