#!/usr/bin/env python
from typing import ClassVar

from .base import ValuedBaseElement
from caldavsync.lib.namespace import ns


# Properties
class GetCtag(ValuedBaseElement):
    tag: ClassVar[str] = ns("CS", "getctag")
