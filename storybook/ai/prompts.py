"""Prompt builders for story, photo-analysis, cover, and illustration calls."""

from __future__ import annotations

from storybook.ai.pipeline.contracts import CharacterDescription, ConsistencyContext, ImagePrompt, StoryRequest, StoryStructure

_ILLUSTRATION_STYLE = "Style: vibrant, colorful, whimsical children's book illustration.\nArt style: modern digital illustration suitable for ages 4-8.\nQuality: high detail, professional finish."


def render_story_prompt(request: StoryRequest) -> str:
  """Build the story-structure prompt; the model must answer with one JSON object."""
  name = request.subject_name
  middle_end = max(int(request.page_count * 0.7), 3)
  age_line = f"- Reader age: {request.subject_age}\n" if request.subject_age else "- Target age: 4-8 years old\n"
  return (
    f"You are an award-winning children's book author writing a personalized storybook for {name}.\n\n"
    "STORY DETAILS:\n"
    f"- Theme: {request.theme}\n"
    f"- Pages: exactly {request.page_count} pages\n"
    f"{age_line}\n"
    "WRITING:\n"
    f"- Clear arc: pages 1-2 introduce {name} and their world, pages 3-{middle_end} build the adventure, the final pages resolve it warmly.\n"
    "- Two to four sentences per page with vivid verbs, sensory detail, and some dialogue.\n"
    f"- {name} is brave, curious, and kind, and grows a little by the end.\n\n"
    "VISUAL CONSISTENCY:\n"
    f"- {name} wears ONE outfit for the whole book. Describe it precisely.\n"
    "- Every location keeps the same colors, furniture, and style whenever it reappears.\n"
    "- Define EVERY other character (friends, animals, adults) with exact appearance details so they look identical on every page.\n\n"
    "Respond with JSON only, shaped like:\n"
    "{\n"
    '  "title": "An evocative 2-4 word title without the character name",\n'
    f'  "characterOutfit": "Precise description of {name}\'s outfit",\n'
    f'  "characters": {{"{name}": "main character", "OtherName": "detailed appearance"}},\n'
    '  "locations": {"locationName": "colors, key features, atmosphere"},\n'
    '  "pages": [\n'
    '    {"pageNumber": 1, "text": "page text", "location": "locationName", "charactersPresent": ["' + name + '"], '
    '"imagePrompt": "Detailed scene: who, wearing what, where, doing what, with which emotion"}\n'
    "  ]\n"
    "}\n"
    f"The pages array must contain exactly {request.page_count} entries numbered from 1."
  )


def render_photo_analysis_prompt(subject_name: str) -> str:
  """Build the reference-photo analysis prompt."""
  return (
    f"Analyze this photo of {subject_name} and describe their appearance in enough detail to draw them identically across many illustrations.\n"
    "Hair must stay exactly the same in every picture, so be very specific about hair color, length, texture, parting, and styling.\n\n"
    "Respond with JSON only:\n"
    "{\n"
    '  "characterDescription": "One paragraph reference description, emphasizing hair",\n'
    '  "skinTone": "specific skin tone",\n'
    '  "hairColor": "exact hair color shade",\n'
    '  "hairStyle": "length, texture, style, part",\n'
    '  "hairLength": "length",\n'
    '  "hairTexture": "straight, wavy, curly, coily",\n'
    '  "eyeColor": "eye color",\n'
    '  "approximateAge": "age range such as 4-6 years",\n'
    '  "distinctiveFeatures": "glasses, freckles, dimples, or none"\n'
    "}"
  )


def render_cover_prompt(title: str, subject_name: str) -> str:
  return (
    f'Create a stunning storybook cover illustration for "{title}". '
    f"Show {subject_name} as the main character in an exciting scene that captures the story. "
    "Child-friendly, professional cover art with a sense of wonder and adventure."
  )


def _format_character(character: CharacterDescription) -> str:
  lines = ["CHARACTER APPEARANCE (KEEP IDENTICAL IN EVERY IMAGE):"]
  if character.character_description:
    lines.append(character.character_description)
  lines.append(f"- Skin tone: {character.skin_tone or 'match the reference photo'}")
  lines.append(f"- Hair color (never change): {character.hair_color or 'match the reference photo'}")
  lines.append(f"- Hair style (never change): {character.hair_style or 'match the reference photo'}")
  if character.hair_length:
    lines.append(f"  * Length: {character.hair_length}")
  if character.hair_texture:
    lines.append(f"  * Texture: {character.hair_texture}")
  lines.append(f"- Eyes: {character.eye_color or 'match the reference photo'}")
  lines.append(f"- Age appearance: {character.approximate_age or 'young child'}")
  if character.distinctive_features and character.distinctive_features.lower() != "none":
    lines.append(f"- Distinctive features: {character.distinctive_features}")
  return "\n".join(lines)


def _format_context(context: ConsistencyContext, location: str | None, subject_name: str) -> str:
  sections = [f"OUTFIT (EXACTLY THE SAME IN ALL ILLUSTRATIONS):\n{context.outfit or 'match the reference photo clothing'}"]

  if location and location in context.locations:
    sections.append(f"CURRENT LOCATION - {location.upper()}:\n{context.locations[location]}\nIf this location appeared before, it must look identical.")

  others = [f"- {name}: {description}" for name, description in context.characters.items() if name != subject_name]
  if others:
    sections.append("OTHER CHARACTERS (IDENTICAL ON EVERY PAGE):\n" + "\n".join(others))

  return "\n\n".join(sections)


def render_image_prompt(prompt: ImagePrompt, context: ConsistencyContext | None, subject_name: str) -> str:
  """Enrich one page prompt with the job's consistency facts."""
  parts = [f"Create a children's book illustration: {prompt.prompt}"]

  if context is not None:
    if context.character is not None:
      parts.append(_format_character(context.character))
    parts.append(_format_context(context, prompt.location, subject_name))

  who = subject_name or "The main character"
  parts.append(
    "CONSISTENCY REQUIREMENTS:\n"
    f"1. {who} must look like the reference photo.\n"
    "2. The outfit must match the description above exactly.\n"
    "3. The location and background must match their descriptions.\n"
    f"4. This is page {prompt.page_number} of a storybook and must match every other page."
  )
  parts.append(_ILLUSTRATION_STYLE)
  return "\n\n".join(parts)


def build_image_prompts(structure: StoryStructure, subject_name: str) -> list[ImagePrompt]:
  """Return the cover prompt at page 0 followed by one prompt per story page."""
  prompts = [ImagePrompt(prompt=render_cover_prompt(structure.title, subject_name), page_number=0, is_cover=True)]
  for page in structure.pages:
    prompts.append(ImagePrompt(prompt=page.image_prompt, page_number=page.page_number, text=page.text, location=page.location))
  return prompts


def build_consistency_context(structure: StoryStructure, character: CharacterDescription | None) -> ConsistencyContext:
  return ConsistencyContext(character=character, outfit=structure.character_outfit, characters=dict(structure.characters), locations=dict(structure.locations))
