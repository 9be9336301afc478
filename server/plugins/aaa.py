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
This is the AAA library for the archive access server
It decides which archived emails a logged in user may read.
"""

import email.utils
import typing

import plugins.session

ADDRESS_HEADERS = ("from", "to", "cc")


def can_access_address(session: plugins.session.SessionObject, address: str) -> bool:
    """Determine if mail to or from an address is readable by the current user"""
    auth_data = session.auth_data
    if not auth_data or not address:
        return False
    address = address.strip().lower()
    if address in auth_data.emails:
        return True
    # Wildcard domains cover any local part at that domain
    if "@" in address:
        return address.rsplit("@", 1)[1] in session.wildcard_domains
    return False


def email_addresses(email_doc: dict) -> typing.List[str]:
    """Returns the bare addresses found in the from/to/cc fields of an archived email"""
    headers = [email_doc.get(key) or "" for key in ADDRESS_HEADERS]
    return [addr for _name, addr in email.utils.getaddresses(headers) if addr]


def can_access_email(session: plugins.session.SessionObject, email_doc: dict) -> bool:
    """Determine if an email can be accessed by the current user"""
    return any(can_access_address(session, addr) for addr in email_addresses(email_doc))
