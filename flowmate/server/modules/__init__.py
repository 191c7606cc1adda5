"""
Built-in Modules

The registry is built from builtin_modules() in declaration order; module
search scans in the same order.
"""

from typing import List

from flowmate.server.engine.module_interface import ModuleBase

from .ai.generate import TextGenerateModule
from .api.fetch import HttpFetchModule
from .messaging.slack import SlackPostMessageModule
from .social.twitter import PostThreadModule, PostTweetModule, SearchRecentModule
from .utilities.text import RenderTemplateModule, SplitThreadModule

BUILTIN_MODULE_CLASSES = (
    TextGenerateModule,
    SearchRecentModule,
    PostTweetModule,
    PostThreadModule,
    SlackPostMessageModule,
    HttpFetchModule,
    RenderTemplateModule,
    SplitThreadModule,
)


def builtin_modules() -> List[ModuleBase]:
    return [cls() for cls in BUILTIN_MODULE_CLASSES]
