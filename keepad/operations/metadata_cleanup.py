"""
Metadata Cleanup Module
=======================

Removes what a decommissioned domain controller leaves behind in the
directory:

1. NTDS Settings object (under its server object in CN=Sites)
2. Server object in CN=Sites
3. Entry in the Domain Controllers OU
4. Computer account anywhere else in the domain

A controller's computer account normally is its Domain Controllers OU entry;
an object found under two categories is handled once.

Each object is deleted only after its own confirmation, unless forced.
Objects are deleted with the tree-delete control so child objects
(connection objects, RID Set, DFSR subscriptions) go with them.
"""

from typing import Optional, Callable

from ..exceptions import DirectoryError
from ..model.schemas import FSMORole, ObjectCategory, DirectoryObject, ItemResult
from .prompts import confirm


CLEANUP_ORDER = [
    ObjectCategory.NTDS_SETTINGS,
    ObjectCategory.SERVER,
    ObjectCategory.OU_ENTRY,
    ObjectCategory.COMPUTER,
]


class MetadataCleanup:
    """Delete a dead controller's leftover directory objects.

    Usage:
        cleanup = MetadataCleanup(client, "DC01")
        results = cleanup.run()
    """

    def __init__(
        self,
        directory,
        dc_name: str,
        force: bool = False,
        prompt: Callable[[str], str] = input,
        verbose: bool = True,
        progress_callback: Optional[Callable[[str], None]] = None
    ):
        self.directory = directory
        self.dc_name = dc_name.split(".")[0]
        self.force = force
        self.prompt = prompt
        self.verbose = verbose
        self.progress_callback = progress_callback
        self._handled: set[str] = set()

    def _log(self, message: str) -> None:
        """Log a message to console and/or callback."""
        if self.verbose:
            print(message)
        if self.progress_callback:
            self.progress_callback(message)

    def warn_held_roles(self) -> list:
        """Warn about FSMO roles still recorded on the dead controller."""
        try:
            holders = self.directory.get_role_holders(list(FSMORole))
        except DirectoryError as e:
            self._log(f"[!] Could not check FSMO role holders: {e}")
            return []

        held = [h for h in holders if (h.server_name or "").upper() == self.dc_name.upper()]
        for holder in held:
            self._log(f"[!] {self.dc_name} still holds {holder.role.value}; seize it before cleaning up")
        return held

    def delete(self, obj: DirectoryObject) -> ItemResult:
        """Confirm and delete a single object."""
        question = f"Delete {obj.category.value} {obj.distinguished_name}?"
        if not confirm(question, force=self.force, prompt=self.prompt):
            self._log(f"[*] Skipped {obj.distinguished_name}")
            return ItemResult(obj.distinguished_name, False, "declined", skipped=True)

        try:
            self.directory.delete_object(obj.distinguished_name)
        except DirectoryError as e:
            self._log(f"[!] {e}")
            return ItemResult(obj.distinguished_name, False, str(e))

        self._log(f"[+] Deleted {obj.category.value}: {obj.distinguished_name}")
        return ItemResult(obj.distinguished_name, True, f"{obj.category.value} deleted")

    def clean_category(self, category: ObjectCategory) -> list[ItemResult]:
        """Locate and delete every object of one category."""
        try:
            objects = self.directory.find_objects(category, self.dc_name)
        except DirectoryError as e:
            self._log(f"[!] Lookup of {category.value} failed: {e}")
            return [ItemResult(category.value, False, str(e))]

        if not objects:
            self._log(f"[*] No {category.value} found for {self.dc_name}")
            return []

        results = []
        for obj in objects:
            key = obj.distinguished_name.lower()
            if key in self._handled:
                self._log(f"[*] {obj.distinguished_name} already handled as another category")
                continue
            self._handled.add(key)
            results.append(self.delete(obj))
        return results

    def run(self) -> list[ItemResult]:
        """Execute the cleanup across all categories in order."""
        self._log(f"[*] Cleaning up metadata for {self.dc_name}...")
        self.warn_held_roles()
        self._handled.clear()

        results = []
        for category in CLEANUP_ORDER:
            results.extend(self.clean_category(category))
        return results
