#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Licensed to the Apache Software Foundation (ASF) under one or more
# contributor license agreements.  See the NOTICE file distributed with
# this work for additional information regarding copyright ownership.
# The ASF licenses this file to You under the Apache License, Version 2.0
# (the "License"); you may not use this file except in compliance with
# the License.  You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
This is the alias resolution library for the mailcow archive access hook.
It works out which addresses (and which wildcard domains) end up delivering
to a given mailbox, based on a snapshot of the mailcow alias table.
"""

import typing

# Field names used for the active flag, newest API first
ACTIVE_FIELDS = ("active_int", "active")


def _is_active(doc: dict) -> bool:
    """An alias is active unless one of the known active flags says otherwise"""
    for field in ACTIVE_FIELDS:
        if field in doc and doc[field] not in (1, True, "1"):
            return False
    return True


class AliasRecord:
    address: str
    destinations: typing.FrozenSet[str]
    active: bool

    def __init__(self, address: str, destinations: typing.Iterable[str], active: bool = True):
        self.address = address.strip().lower()
        self.destinations = frozenset(d.strip().lower() for d in destinations if d and d.strip())
        self.active = active
        if not self.address:
            raise ValueError("An alias must have an address")

    @classmethod
    def from_api(cls, doc) -> typing.Optional["AliasRecord"]:
        """Builds a record from a raw mailcow API object, or None if the object is unusable"""
        if not isinstance(doc, dict):
            return None
        address = doc.get("address")
        goto = doc.get("goto")
        if not isinstance(address, str) or not isinstance(goto, str):
            return None
        if not address.strip():
            return None
        return cls(address, goto.split(","), active=_is_active(doc))

    @property
    def is_wildcard(self) -> bool:
        return self.address.startswith("@")

    @property
    def domain(self) -> str:
        """Domain of a wildcard alias, or the domain part of a plain one"""
        return self.address.rsplit("@", 1)[-1]

    def routes_to(self, target: str) -> bool:
        return target in self.destinations

    def __repr__(self):
        return "AliasRecord(%r -> %s)" % (self.address, ",".join(sorted(self.destinations)))


class ResolutionResult:
    addresses: typing.Set[str]
    wildcard_domains: typing.Set[str]

    def __init__(self, addresses: typing.Set[str], wildcard_domains: typing.Set[str]):
        self.addresses = addresses
        self.wildcard_domains = wildcard_domains


def resolve_routing_addresses(mailbox: str, aliases: typing.Iterable[AliasRecord]) -> typing.Set[str]:
    """
    Finds every alias address that delivers to the mailbox, directly or via other aliases.
    Every address is expanded at most once, so alias loops and re-converging chains
    always terminate. The mailbox itself is never returned.
    """
    mailbox = mailbox.strip().lower()
    candidates = [alias for alias in aliases if alias.active and not alias.is_wildcard]
    seen: typing.Set[str] = {mailbox}
    stack: typing.List[str] = [mailbox]
    while stack:
        target = stack.pop()
        for alias in candidates:
            if alias.address in seen:
                continue
            if alias.routes_to(target):
                seen.add(alias.address)
                stack.append(alias.address)
    seen.discard(mailbox)
    return seen


def match_wildcards(mailbox: str, aliases: typing.Iterable[AliasRecord]) -> typing.Set[str]:
    """Returns the bare domains of all wildcard aliases (@domain.tld) that deliver straight to the mailbox"""
    mailbox = mailbox.strip().lower()
    return {
        alias.domain
        for alias in aliases
        if alias.active and alias.is_wildcard and alias.routes_to(mailbox)
    }


def resolve(mailbox: str, aliases: typing.Sequence[AliasRecord]) -> ResolutionResult:
    return ResolutionResult(
        addresses=resolve_routing_addresses(mailbox, aliases),
        wildcard_domains=match_wildcards(mailbox, aliases),
    )
