"""
Prompt construction for the generation, continuation and revision turns.
"""

from typing import List, Optional

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from clone_gen.io.markup import markup_sample
from clone_gen.io.reference_loader import ReferenceLoader
from clone_gen.models import ColorInfo, GeneratedFile, GenerationContext


SYSTEM_PROMPT = """You are an expert frontend engineer who rebuilds existing websites as clean,
production-ready Next.js projects.

You answer with a single artifact that contains every file of the project.

Output format:
1. Wrap the whole answer in <artifact> ... </artifact>.
2. Write every file as
   <action type="file" path="relative/path/to/file">full file content</action>
3. To change part of an existing file, use a diff instead:
   <action type="diff" path="relative/path/to/file"><oldContent>exact existing snippet</oldContent><newContent>replacement snippet</newContent></action>
   The old snippet must be copied verbatim from the current file.
4. Paths are relative to the project root. Never nest actions.
5. Do not add explanations outside the artifact.

If your answer is cut off, you will be asked to continue. Continue exactly
where you stopped, without repeating anything you already wrote."""


CONTINUE_PROMPT = """Continue from where you left off. Do not repeat anything you already wrote.
Keep using the same <action> format and close the <artifact> tag when every file is complete."""


GENERATION_PROMPT_TEMPLATE = """Create a modern Next.js application with the following requirements:
1. Use Next.js 14 App Router
2. Use TypeScript
3. Use Tailwind CSS
4. Use shadcn/ui components (write the component code yourself; all of shadcn/ui's dependencies are already installed)
5. Follow best practices for file structure and component organization
6. Include proper error handling and loading states
7. Make it responsive and accessible
8. IMPORTANT: Use Lucide React icons instead of raw SVG paths

The site you are cloning is: {site_url}

{color_guidance}

For relative image URLs, for example <img src="/images/logo.png" />, use the site URL to make the
image URL absolute: "/images/logo.png" becomes "{site_url}/images/logo.png".

{user_request}

The website has been captured in {image_count} screenshots for reference.

Here is a sample of the site's markup:
{markup_sample}

Please generate all necessary files including:
- Required configuration files (next.config.js, tailwind.config.js, etc.)
- Page components
- UI components
- Utility functions
- Type definitions
- globals.css with proper CSS variables
- Do not forget the layout.tsx file
- Do not forget the page.tsx file in its respective folder
- CRITICAL: Do not forget the next.config.js file - the project won't run without it

Please wrap your response in <artifact> tags and each file in <action type="file" path="path/to/file"> tags."""


REVISION_PROMPT_TEMPLATE = """I need you to refine the code to make it look as similar as possible to the uploaded screenshots.

The site you are cloning is: {site_url}

{color_guidance}

{user_request}

The website has been captured in {image_count} screenshots for reference.

Here is a sample of the site's markup:
{markup_sample}

Here is the current implementation that needs refinement:
{file_contents}

Please focus on:
1. Making the UI match the screenshots as closely as possible
2. Ensuring colors, spacing, typography, and layout are accurate - use the exact hex codes provided
3. Fixing any visual inconsistencies
4. Improving responsiveness
5. Ensuring all interactive elements work correctly
6. Adding any missing sections or components that were in the original site

IMPORTANT INSTRUCTIONS:
1. Use Lucide React icons instead of raw SVG paths where appropriate
2. For small changes to existing files, use the diff format:
   <action type="diff" path="path/to/file"><oldContent>original code snippet</oldContent><newContent>updated code snippet</newContent></action>
3. For completely new files or major rewrites, use the normal file format:
   <action type="file" path="path/to/file">full file content</action>
4. Only include files that need changes
5. Make sure color values precisely match the provided hex codes

Please wrap your response in <artifact> tags."""


ESSENTIAL_EXTENSIONS = (".tsx", ".jsx", ".ts", ".js", ".css", ".html")

_FENCE_LANGUAGES = {
    ".tsx": "typescript",
    ".ts": "typescript",
    ".jsx": "jsx",
    ".js": "javascript",
    ".css": "css",
    ".html": "html",
}


def build_color_guidance(colors: List[ColorInfo]) -> str:
    """Turn sampled colors into prompt guidance; "" when there are none."""
    if not colors:
        return ""

    lines = ["I analyzed the site's color palette and found these dominant colors:"]
    for color in colors:
        lines.append(f"- {color.description}: {color.hex} ({color.rgb})")
    lines.append("")
    lines.append("Please use these exact hex color codes in your implementation for accurate visual matching.")
    return "\n".join(lines)


def select_essential_files(files: List[GeneratedFile], limit: int = 10) -> List[GeneratedFile]:
    """Pick up to `limit` source files worth showing to the reviser."""
    essential = [file for file in files if file.path.endswith(ESSENTIAL_EXTENSIONS)]
    return essential[:limit]


def format_file_contents(files: List[GeneratedFile]) -> str:
    """Serialize files as fenced blocks for a prompt."""
    blocks = []
    for file in files:
        extension = "." + file.path.rsplit(".", 1)[-1] if "." in file.path else ""
        language = _FENCE_LANGUAGES.get(extension, "")
        blocks.append(f"File: {file.path}\n```{language}\n{file.content}\n```")
    return "\n\n".join(blocks)


class PromptBuilder:
    """Assembles the multi-part messages sent to the model."""

    def __init__(
        self,
        loader: Optional[ReferenceLoader] = None,
        max_images: int = 5,
        markup_sample_chars: int = 1000,
        max_revision_files: int = 10,
    ):
        """
        Initialize the builder.

        Args:
            loader: Used to format image references as message parts.
            max_images: Maximum number of images attached to a request.
            markup_sample_chars: Length of the markup sample in prompts.
            max_revision_files: Maximum files serialized into a revision prompt.
        """
        self.loader = loader or ReferenceLoader()
        self.max_images = max_images
        self.markup_sample_chars = markup_sample_chars
        self.max_revision_files = max_revision_files

    def _user_message(self, text: str, context: GenerationContext) -> HumanMessage:
        content = [{"type": "text", "text": text}]
        content.extend(self.loader.format_images(context.images)[:self.max_images])
        return HumanMessage(content=content)

    def _common_fields(self, context: GenerationContext, colors: List[ColorInfo], markup: str) -> dict:
        return {
            "site_url": context.site_url,
            "color_guidance": build_color_guidance(colors),
            "user_request": (
                f"Here is what the user requested: {context.user_prompt}" if context.user_prompt else ""
            ),
            "image_count": len(context.images),
            "markup_sample": markup_sample(markup, self.markup_sample_chars) or "(no markup captured)",
        }

    def build_generation_messages(
        self,
        context: GenerationContext,
        colors: List[ColorInfo],
        markup: str,
    ) -> List[BaseMessage]:
        """
        Create the messages for the initial generation turn.

        Args:
            context: Run input.
            colors: Sampled color guidance.
            markup: Sanitized site markup.

        Returns:
            [SystemMessage, HumanMessage] with up to max_images images attached.
        """
        text = GENERATION_PROMPT_TEMPLATE.format(**self._common_fields(context, colors, markup))
        return [
            SystemMessage(content=SYSTEM_PROMPT),
            self._user_message(text, context),
        ]

    def build_revision_messages(
        self,
        context: GenerationContext,
        files: List[GeneratedFile],
        colors: List[ColorInfo],
        markup: str,
    ) -> List[BaseMessage]:
        """Create the messages for the revision turn."""
        selected = select_essential_files(files, self.max_revision_files)
        text = REVISION_PROMPT_TEMPLATE.format(
            file_contents=format_file_contents(selected),
            **self._common_fields(context, colors, markup),
        )
        return [
            SystemMessage(content=SYSTEM_PROMPT),
            self._user_message(text, context),
        ]

    @staticmethod
    def build_continuation_messages(messages: List[BaseMessage], assistant_content: str) -> List[BaseMessage]:
        """
        Extend a conversation with the assistant output so far and the
        continue directive. The input list is not modified.
        """
        return list(messages) + [
            AIMessage(content=assistant_content),
            HumanMessage(content=CONTINUE_PROMPT),
        ]
