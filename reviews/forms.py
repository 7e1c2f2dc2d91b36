from django import forms


class ReviewForm(forms.Form):
    rating = forms.IntegerField(
        min_value=1, max_value=5,
        error_messages={
            'min_value': 'Rating must be between 1 and 5',
            'max_value': 'Rating must be between 1 and 5',
        },
    )
    title = forms.CharField(max_length=200, required=False)
    comment = forms.CharField(required=False)

    def clean_title(self):
        return self.cleaned_data['title'].strip()

    def clean_comment(self):
        return self.cleaned_data['comment'].strip()
