"""Parser for Kotlin DSL build scripts (build.gradle.kts).

Same extraction rules as the Groovy parser, with Kotlin call syntax:
  - implementation("group:artifact:version")
  - implementation(group = "g", name = "a", version = "v")
  - implementation(libs.some.library)
  - implementation("g:a:v") { exclude(group = "g", module = "m") }
"""

from __future__ import annotations

from unidep.engines.dependency_scanner.models import DIALECT_KOTLIN
from unidep.engines.dependency_scanner.parsers.gradle_build import GradleBuildParser
from unidep.engines.dependency_scanner.registry import register_parser


class GradleKtsParser(GradleBuildParser):
    detection_method = "gradle-kts"
    file_patterns = ["**/build.gradle.kts"]
    dialect = DIALECT_KOTLIN


register_parser(GradleKtsParser())
