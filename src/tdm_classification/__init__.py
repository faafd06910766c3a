# Copyright 2024 Heinrich Krupp
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""TDM Classification Service: semantic tag grammar, rule registry and registry administration."""

__version__ = "1.0.0"

from .models import ClassificationSet, Registry, SemanticRule, try_parse  # noqa: E402
from .storage import RegistryStore  # noqa: E402

__all__ = ["ClassificationSet", "Registry", "RegistryStore", "SemanticRule", "try_parse"]
