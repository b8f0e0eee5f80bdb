"""Maps paths inside this container to paths on the Docker host."""

from dbupgrader.errors import HostPathNotFoundError
from dbupgrader.errors_catalog import actionable_error


class HostPathResolver:
    """Finds the host side of a bind mount of the current container.

    Sibling containers started through the host's Docker daemon only understand
    host paths, so bind specs for the helper container are built from these.
    """

    def __init__(self, logger, docker_runtime, identity):
        self.logger = logger
        self.docker_runtime = docker_runtime
        self.identity = identity

    def resolve(self, path: str) -> str:
        container_id = self.identity.container_id()
        bindings = self.docker_runtime.inspect_container(container_id)

        for kind in ("bind", "mount"):
            for binding in bindings:
                if binding.kind == kind and binding.container_path == path:
                    self.logger.debug("Resolved %s to host path %s via %s", path, binding.host_path, kind)
                    return binding.host_path

        raise HostPathNotFoundError(
            actionable_error("host_path_not_found", path=path, container_id=container_id)
        )
