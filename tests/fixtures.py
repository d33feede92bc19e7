GOOGLE_CSS = """/* latin-ext */
@font-face {
  font-family: 'Inter';
  font-style: normal;
  font-weight: 400;
  font-display: swap;
  src: url(https://fonts.gstatic.com/s/inter/v13/inter-ext.woff2) format('woff2');
  unicode-range: U+0100-02AF, U+0304, U+0308;
}
/* latin */
@font-face {
  font-family: 'Inter';
  font-style: normal;
  font-weight: 400;
  font-display: swap;
  src: url(https://fonts.gstatic.com/s/inter/v13/inter-latin.woff2) format('woff2');
  unicode-range: U+0000-00FF, U+0131, U+0152-0153;
}
"""

CSS_URL = "https://fonts.googleapis.com/css2?family=Inter:wght@400&display=swap"

# css2 with &text= answers with kit URLs that share the basename "font"
KIT_CSS = """@font-face {
  font-family: 'Family A';
  font-style: normal;
  font-weight: 400;
  src: url(https://fonts.gstatic.com/l/font?kit=AAAkitAAA&skey=1&v=1) format('woff2');
}
@font-face {
  font-family: 'Family B';
  font-style: normal;
  font-weight: 400;
  src: url(https://fonts.gstatic.com/l/font?kit=BBBkitBBB&skey=2&v=1) format('woff2');
}
"""
