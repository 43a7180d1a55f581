"""
Fixed catalog of AI models and operation-mode presets.
"""

from typing import List, Optional

from src.models.core import AIModel, OperationModeConfig


CUSTOM_MODE = "custom"
DEFAULT_MODE = "crowd"


def default_models() -> List[AIModel]:
    """Return a fresh copy of the model catalog with default enablement."""
    return [
        AIModel(id='yolo', name='Object Detection',
                description='YOLOv8n - People, vehicles, objects', icon='🎯', enabled=True),
        AIModel(id='pose', name='Pose Estimation',
                description='YOLOv8n-pose - Skeleton/fall detection', icon='🦴', enabled=True),
        AIModel(id='face', name='Face Detection',
                description='SCRFD - Face tracking', icon='👤', enabled=False),
        AIModel(id='lpr', name='License Plate',
                description='LPRNet - Vehicle plates', icon='🚗', enabled=False),
    ]


OPERATION_MODES: List[OperationModeConfig] = [
    OperationModeConfig(id='security', name='Security Mode', description='All models, max alerts',
                        icon='🔒', models=['yolo', 'pose', 'face', 'lpr'], alert_level='high'),
    OperationModeConfig(id='crowd', name='Crowd Analytics', description='Detection + pose for counting',
                        icon='👥', models=['yolo', 'pose'], alert_level='medium'),
    OperationModeConfig(id='access', name='Access Control', description='Face + LPR only',
                        icon='🚪', models=['face', 'lpr'], alert_level='medium'),
    OperationModeConfig(id='performance', name='Performance Mode', description='Detection only, max FPS',
                        icon='⚡', models=['yolo'], alert_level='low'),
    OperationModeConfig(id=CUSTOM_MODE, name='Custom', description='Your toggle selections',
                        icon='⚙️', models=[], alert_level='medium'),
]


def get_operation_mode(mode_id: str) -> Optional[OperationModeConfig]:
    for mode in OPERATION_MODES:
        if mode.id == mode_id:
            return mode
    return None
