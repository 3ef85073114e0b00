from pathlib import Path

from kubernetes.client.api_client import ApiClient
from kubernetes.client.configuration import Configuration
from kubernetes.config.config_exception import ConfigException
from kubernetes.config.incluster_config import load_incluster_config
from kubernetes.config.kube_config import load_kube_config
from loguru import logger

from kubeplate.errors import CredentialsError


def load_api_client(
    kubeconfig: Path | None = None,
    context: str | None = None,
    in_cluster: bool = False,
) -> ApiClient:
    """
    Create an API client for a cluster.

    Args:
        kubeconfig: The kubeconfig file to load. If not set, the `KUBECONFIG` environment variable or the default
                    location `~/.kube/config` is used.
        context: The kubeconfig context to use. If not set, the current context is used.
        in_cluster: Use the service account that is mounted into the Pod that kubeplate runs in. The *kubeconfig*
                    and *context* arguments are ignored.
    Raises:
        CredentialsError: If the configuration can not be loaded.
    """

    configuration = Configuration()
    try:
        if in_cluster:
            logger.info("Using in-cluster configuration.")
            load_incluster_config(client_configuration=configuration)
        else:
            logger.info("Using kubeconfig '{}' (context: {}).", kubeconfig or "default", context or "current")
            load_kube_config(
                config_file=str(kubeconfig) if kubeconfig else None,
                context=context,
                client_configuration=configuration,
            )
    except (ConfigException, OSError) as exc:
        raise CredentialsError(f"failed to load cluster configuration: {exc}") from exc

    return ApiClient(configuration)
