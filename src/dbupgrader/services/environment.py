"""Probes that identify the container this process runs in."""

import re

from dbupgrader.errors import ContainerIdentityError
from dbupgrader.errors_catalog import actionable_error


class StaticContainerIdentity:
    """Returns a container id known up front."""

    def __init__(self, container_id: str):
        self._container_id = container_id

    def container_id(self) -> str:
        return self._container_id


class CgroupContainerIdentity:
    """Recovers the container id from the kernel's view of this process."""

    MOUNTINFO_PATTERN = re.compile(r"/containers/([0-9a-f]{64})/")

    def __init__(self, cgroup_path: str = "/proc/self/cgroup", mountinfo_path: str = "/proc/self/mountinfo"):
        self.cgroup_path = cgroup_path
        self.mountinfo_path = mountinfo_path

    def container_id(self) -> str:
        try:
            with open(self.cgroup_path, "r", encoding="utf-8") as file_obj:
                line = file_obj.readline()
        except OSError as exc:
            raise ContainerIdentityError(
                actionable_error("container_identity", reason=f"failed to read {self.cgroup_path}: {exc}")
            ) from exc

        # e.g. 11:hugetlb:/docker/ed70f86d8e5cb2e94975d29d0185c90dd56621c05444e5d7ae0891f290255ce9
        parts = line.split("/", 2)
        if len(parts) == 3 and parts[2].strip():
            return parts[2].strip()

        # cgroup v2 reports "0::/"; Docker's /etc/hostname bind still names the container.
        found = self._from_mountinfo()
        if found:
            return found

        raise ContainerIdentityError(
            actionable_error("container_identity", reason=f"failed to parse {self.cgroup_path}")
        )

    def _from_mountinfo(self):
        try:
            with open(self.mountinfo_path, "r", encoding="utf-8") as file_obj:
                content = file_obj.read()
        except OSError:
            return None

        match = self.MOUNTINFO_PATTERN.search(content)
        return match.group(1) if match else None
