"""
Service identification for log lines.

Format: ``{service}@{environment}:{instance}`` where instance is the container
task id when running on ECS and the PID otherwise.
"""

import os
from functools import lru_cache


@lru_cache(maxsize=1)
def get_service_context() -> str:
    service_name = os.getenv('SERVICE_NAME', 'ticket-checkout')
    deploy_env = os.getenv('DEPLOY_ENV', 'local_dev')

    instance = str(os.getpid())
    metadata_uri = os.getenv('ECS_CONTAINER_METADATA_URI_V4', '')
    if metadata_uri:
        # http://169.254.170.2/v4/{task_id}-{timestamp}
        instance = metadata_uri.rstrip('/').split('/')[-1].split('-')[0][:8] or 'ecs'

    return f'{service_name}@{deploy_env}:{instance}'
