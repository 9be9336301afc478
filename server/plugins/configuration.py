#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Licensed to the Apache Software Foundation (ASF) under one
# or more contributor license agreements.  See the NOTICE file
# distributed with this work for additional information
# regarding copyright ownership.  The ASF licenses this file
# to you under the Apache License, Version 2.0 (the
# "License"); you may not use this file except in compliance
# with the License.  You may obtain a copy of the License at
#
#   http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing,
# software distributed under the License is distributed on an
# "AS IS" BASIS, WITHOUT WARRANTIES OR CONDITIONS OF ANY
# KIND, either express or implied.  See the License for the
# specific language governing permissions and limitations
# under the License.

import typing

MAILCOW_DEFAULT_TIMEOUT = 5  # seconds, per API request


class ServerConfig:
    port: int
    ip: str

    def __init__(self, subyaml: dict):
        self.ip = subyaml.get("bind", "127.0.0.1")
        self.port = int(subyaml.get("port", 8080))


class ImapConfig:
    host: str

    def __init__(self, subyaml: dict):
        self.host = str(subyaml.get("host", "") or "")


class MailcowConfig:
    api_key: str
    host: str
    scheme: str
    timeout: float
    set_realname: bool

    def __init__(self, subyaml: dict, imap: ImapConfig):
        self.api_key = str(subyaml.get("api_key", "") or "")
        # Falls back to the IMAP host, which is usually the mailcow instance itself
        self.host = str(subyaml.get("host", "") or imap.host)
        self.scheme = str(subyaml.get("scheme", "https"))
        self.timeout = float(subyaml.get("timeout", MAILCOW_DEFAULT_TIMEOUT))
        self.set_realname = subyaml.get("set_realname", False) is True

    def api_url(self, path: str) -> str:
        """Returns the full URL for an API path such as v1/get/alias/all"""
        return "%s://%s/api/%s" % (self.scheme, self.host, path.lstrip("/"))

    def validate(self):
        if not self.api_key:
            raise ValueError("mailcow.api_key must be set to query the mailcow API")
        if not self.host:
            raise ValueError("Neither mailcow.host nor imap.host is set, cannot reach the mailcow API")


class AuthConfig:
    custom_email_query: str

    def __init__(self, subyaml: dict):
        # Name of the function run at login to extend the addresses a user may read. Empty disables it.
        self.custom_email_query = str(subyaml.get("custom_email_query", "") or "")


class UIConfig:
    traceback: bool

    def __init__(self, subyaml: dict):
        # Default to spitting out traceback to web clients
        # Set to false in yaml to redirect to stderr instead.
        self.traceback = subyaml.get("traceback", True)


class Configuration:
    server: ServerConfig
    imap: ImapConfig
    mailcow: MailcowConfig
    auth: AuthConfig
    ui: UIConfig

    def __init__(self, yml: typing.Optional[dict]):
        yml = yml or {}
        self.server = ServerConfig(yml.get("server") or {})
        self.imap = ImapConfig(yml.get("imap") or {})
        self.mailcow = MailcowConfig(yml.get("mailcow") or {}, self.imap)
        self.auth = AuthConfig(yml.get("auth") or {})
        self.ui = UIConfig(yml.get("ui") or {})


class InterData:
    """
        A mix of various global variables used throughout processes
    """

    sessions: dict

    def __init__(self):
        self.sessions = {}
